# Overview: Domain error taxonomy shared by services and routes.

"""
Kiosk error taxonomy.

Services raise these; routes translate them with error_response().
Validation and scope errors are raised before any mutation. Failures inside
an atomic unit are raised after the session has been rolled back.
"""

from __future__ import annotations

from flask import jsonify


class KioskError(Exception):
    """Base for expected, user-visible failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(KioskError):
    """400-level input problem."""
    status_code = 400


class InsufficientStock(ValidationError):
    """Requested quantity exceeds the product's stock."""


class NotFoundError(KioskError):
    status_code = 404


class ProductNotFound(NotFoundError):
    pass


class UserNotFound(NotFoundError):
    pass


class CountryNotFound(NotFoundError):
    pass


class AuthenticationError(KioskError):
    """Invalid credentials or one-time code."""
    status_code = 401


class ScopeViolation(KioskError):
    """Role or country mismatch between the actor and the target."""
    status_code = 403


class ConflictError(KioskError):
    """409-level business rule conflict (negative petty cash, duplicate identity)."""
    status_code = 409


class TransactionFailed(KioskError):
    """An atomic unit failed and was rolled back."""
    status_code = 500


def error_response(exc: KioskError):
    body = {"message": exc.message}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), exc.status_code
