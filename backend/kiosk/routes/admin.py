# Overview: Flask API routes for admin petty-cash and country overview.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, error_response
from ..services import petty_cash_service
from ..validation import json_object, parse_money
from ..decorators import require_auth, require_admin, require_country


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/petty-cash")
@require_auth
@require_admin
@require_country
def get_petty_cash_route():
    try:
        country = petty_cash_service.get_petty_cash(g.country_id)
        return jsonify({
            "id": country.id,
            "name": country.name,
            "pettyCash": country.to_dict()["pettyCash"],
        }), 200
    except KioskError as e:
        return error_response(e)


@admin_bp.post("/petty-cash")
@require_auth
@require_admin
@require_country
def adjust_petty_cash_route():
    """Body: {amount, operation: add|subtract, description?}"""
    try:
        data = json_object(request.get_json(silent=True))
        operation = data.get("operation")
        if data.get("amount") in (None, "") or operation not in petty_cash_service.MANUAL_OPERATIONS:
            return jsonify({
                "message": "Invalid request. Amount and operation (add/subtract) are required."
            }), 400

        amount = parse_money(data.get("amount"), "amount", allow_zero=False)
        country = petty_cash_service.adjust(
            g.country_id,
            amount,
            operation,
            admin_id=g.current_principal.id,
            description=data.get("description"),
        )

        verb = "increased" if operation == petty_cash_service.OPERATION_ADD else "decreased"
        return jsonify({
            "success": True,
            "pettyCash": country.to_dict()["pettyCash"],
            "message": f"Petty cash {verb} by {amount}",
        }), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update petty cash")
        return jsonify({"message": "Failed to update petty cash"}), 500


@admin_bp.get("/petty-cash/logs")
@require_auth
@require_admin
@require_country
def petty_cash_logs_route():
    limit = request.args.get("limit", default=100, type=int)
    logs = petty_cash_service.list_logs(g.country_id, limit=max(1, min(limit, 500)))
    return jsonify([entry.to_dict() for entry in logs]), 200


@admin_bp.get("/country-info")
@require_auth
@require_admin
@require_country
def country_info_route():
    try:
        return jsonify(petty_cash_service.get_country_info(g.country_id)), 200
    except KioskError as e:
        return error_response(e)
