# Overview: Flask API routes for users; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, error_response
from ..services import auth_service, user_service
from ..decorators import require_auth, require_admin, require_user
from ..validation import json_object


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    """Users of the admin's country with their unsettled transactions."""
    try:
        return jsonify(user_service.list_country_users(g.country_id)), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"message": "Internal server error"}), 500


@users_bp.get("/<int:user_id>")
@require_auth
def get_user_route(user_id: int):
    try:
        return jsonify(user_service.get_user(user_id, g.session_context).to_dict()), 200
    except KioskError as e:
        return error_response(e)


@users_bp.post("/complete-profile")
@require_auth
@require_user
def complete_profile_route():
    """Body: {phoneNumber, password?}"""
    try:
        data = json_object(request.get_json(silent=True))
        phone_number = (data.get("phoneNumber") or "").strip()
        if not phone_number:
            return jsonify({"message": "Phone number is required"}), 400

        user = auth_service.complete_profile(
            g.current_principal, phone_number, data.get("password")
        )
        return jsonify({
            "success": True,
            "message": "Profile completed successfully",
            "user": user.to_dict(),
        }), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete profile")
        return jsonify({"message": "Internal server error"}), 500
