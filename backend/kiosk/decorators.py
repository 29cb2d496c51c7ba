# Overview: Request decorators for API routes (authentication, role, country scope).

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.session_service import ROLE_ADMIN, ROLE_USER


def _is_authenticated() -> bool:
    return hasattr(g, 'session_context')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session and establish the identity context.

    Sets on Flask g:
    - g.session_context: the SessionContext
    - g.current_principal: the acting User or Admin
    - g.role: "user" or "admin"
    - g.country_id: the session's country scope (may be None for admins)
    - g.token: the plaintext bearer token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"message": "Unauthorized"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"message": "Invalid or expired token"}), 401

        g.session_context = context
        g.current_principal = context.principal
        g.role = context.role
        g.country_id = context.country_id
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require @require_auth first and an admin principal."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"message": "Unauthorized"}), 401
        if g.role != ROLE_ADMIN:
            return jsonify({"message": "Forbidden: Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_user(f):
    """Require @require_auth first and a (non-admin) user principal."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"message": "Unauthorized"}), 401
        if g.role != ROLE_USER:
            return jsonify({"message": "Only users can perform this action"}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_country(f):
    """Require the session to be scoped to a country (admins may be unscoped)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"message": "Unauthorized"}), 401
        if g.country_id is None:
            return jsonify({"message": "Please select a country first"}), 400
        return f(*args, **kwargs)
    return decorated_function
