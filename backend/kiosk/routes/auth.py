# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes.

- Password login for users (phone number) and admins (username)
- Email OTP request/verify for users and admins
- Session inspection, logout and country switching
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, error_response
from ..services import auth_service, otp_service, session_service
from ..decorators import require_auth
from ..validation import json_object, parse_int


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true" if value is not None else False


def _optional_country(data: dict) -> int | None:
    value = data.get("countryId")
    if value in (None, ""):
        return None
    return parse_int(value, "countryId", minimum=1)


def _session_payload(principal, country_id=None) -> dict:
    session, token = session_service.create_session(
        principal,
        country_id=country_id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    context = session_service.SessionContext(
        principal=principal,
        role=session.principal_type,
        session=session,
        country_id=session.country_id,
    )
    return {
        "token": token,
        "user": context.to_dict(),
        "role": context.role,
        "countryId": context.country_id,
        "session": session.to_dict(),
    }


@auth_bp.post("/login")
def login_route():
    """
    Password login.

    Body: {phoneNumber|username, password, isAdmin?, countryId?}
    """
    try:
        data = json_object(request.get_json(silent=True))
        identifier = data.get("phoneNumber") or data.get("username")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"message": "Identifier and password required"}), 400

        country_id = _optional_country(data)

        if _flag(data.get("isAdmin")):
            principal = auth_service.authenticate_admin(identifier, password)
        else:
            principal = auth_service.authenticate_user(identifier, password, country_id)

        if not principal:
            return jsonify({"message": "Invalid credentials"}), 401

        payload = _session_payload(principal, country_id)
        payload["message"] = "Login successful"
        return jsonify(payload), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.post("/send-otp")
def send_otp_route():
    """
    Body: {email, isAdmin?, countryId?, isNewUser?}

    Always answers with the same message for unknown accounts.
    """
    try:
        data = json_object(request.get_json(silent=True))
        result = otp_service.request_otp(
            (data.get("email") or "").strip(),
            is_admin=_flag(data.get("isAdmin")),
            country_id=_optional_country(data),
            is_new_user=_flag(data.get("isNewUser")),
        )

        body = {"success": True, "message": "If the account exists, an OTP has been sent"}
        if result.otp and current_app.config.get("EXPOSE_OTP_IN_RESPONSE"):
            body["otp"] = result.otp
        return jsonify(body), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to send OTP")
        return jsonify({"message": "Failed to send OTP"}), 500


@auth_bp.post("/verify-otp")
def verify_otp_route():
    """Body: {email, otp, isAdmin?, countryId?}"""
    try:
        data = json_object(request.get_json(silent=True))
        country_id = _optional_country(data)
        principal, is_new_user = otp_service.verify_otp(
            (data.get("email") or "").strip(),
            str(data.get("otp") or "").strip(),
            is_admin=_flag(data.get("isAdmin")),
            country_id=country_id,
        )

        payload = _session_payload(principal, country_id)
        payload["success"] = True
        payload["isNewUser"] = is_new_user
        return jsonify(payload), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify OTP")
        return jsonify({"message": "Failed to verify OTP"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token)
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout")
        return jsonify({"message": "Internal server error"}), 500


@auth_bp.get("/session")
@require_auth
def session_route():
    return jsonify({
        "user": g.session_context.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200


@auth_bp.post("/update-country")
@require_auth
def update_country_route():
    """Body: {countryId}. Moves the current session to another country."""
    try:
        data = json_object(request.get_json(silent=True))
        if not data.get("countryId"):
            return jsonify({"message": "Country ID is required"}), 400

        country_id = parse_int(data.get("countryId"), "countryId", minimum=1)
        country = auth_service.update_country(g.session_context, country_id)

        return jsonify({
            "success": True,
            "message": "Country updated successfully",
            "countryId": country.id,
            "countryName": country.name,
        }), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update country")
        return jsonify({"message": "Internal server error"}), 500
