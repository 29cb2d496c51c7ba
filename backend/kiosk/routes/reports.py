# Overview: Flask API routes for admin reports.

from flask import Blueprint, Response, jsonify, current_app, g

from ..errors import KioskError, error_response
from ..services import reporting_service
from ..decorators import require_auth, require_admin


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/users")
@require_auth
@require_admin
def users_report_route():
    try:
        return jsonify(reporting_service.users_report(g.country_id)), 200
    except Exception:
        current_app.logger.exception("Failed to generate user report")
        return jsonify({"message": "Failed to generate report"}), 500


@reports_bp.get("/user-balances")
@require_auth
@require_admin
def user_balances_route():
    """CSV download of outstanding balances for the admin's country."""
    if g.country_id is None:
        return jsonify({"message": "Please select a country to generate the report."}), 400

    try:
        filename, content = reporting_service.user_balances_csv(g.country_id)
        return Response(
            content,
            status=200,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to generate balances report")
        return jsonify({"message": "Internal server error"}), 500
