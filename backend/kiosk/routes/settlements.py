# Overview: Flask API routes for settling user balances.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, error_response
from ..services import settlement_service
from ..validation import json_object, parse_int
from ..decorators import require_auth, require_admin


settlements_bp = Blueprint("settlements", __name__, url_prefix="/api/settlements")


@settlements_bp.post("")
@require_auth
@require_admin
def settle_route():
    """
    Settle every unsettled transaction of a user in the admin's country.

    Body: {userId}
    """
    try:
        data = json_object(request.get_json(silent=True))
        if not data.get("userId"):
            return jsonify({"message": "User ID is required"}), 400

        result = settlement_service.settle_user(
            parse_int(data.get("userId"), "userId", minimum=1),
            g.country_id,
            admin_id=g.current_principal.id,
        )
        return jsonify(result.to_dict()), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to settle balance")
        return jsonify({"message": "An error occurred while settling the balance"}), 500
