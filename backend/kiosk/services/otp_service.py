# Overview: Email one-time-password sign-in for users and admins.

"""
Email OTP flow.

request_otp issues a 6-digit code valid for OTP_EXPIRY_MINUTES and mails it.
Only a bcrypt hash of the code is stored. Unknown user emails get a new
account (with a "temp_..." placeholder phone number) when a country is
given or a new account was explicitly asked for; unknown admin emails never
create anything. The response never reveals whether an admin account exists.

verify_otp checks and clears the code. Codes are single-use.
"""

from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Admin, User
from ..errors import AuthenticationError, ConflictError, ValidationError
from ..time_utils import utcnow
from .auth_service import hash_secret, verify_secret
from .country_service import get_country
from . import notification_service


@dataclass
class OtpRequest:
    otp: str | None
    account_found: bool
    user_created: bool = False


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def _placeholder_phone(email: str) -> str:
    return (
        f"temp_{int(time.time() * 1000)}_{secrets.token_hex(4)}_"
        f"{re.sub(r'[^a-zA-Z0-9]', '', email)}"
    )[:255]


def _find_principal(email: str, is_admin: bool, country_id: int | None):
    if is_admin:
        return db.session.query(Admin).filter_by(email=email).first()

    query = db.session.query(User).filter(User.email == email)
    if country_id is not None:
        query = query.filter(User.country_id == country_id)
    return query.first()


def request_otp(
    email: str,
    *,
    is_admin: bool = False,
    country_id: int | None = None,
    is_new_user: bool = False,
) -> OtpRequest:
    if not email:
        raise ValidationError("Email is required")

    principal = _find_principal(email, is_admin, country_id)

    if is_new_user and principal is not None:
        raise ConflictError(
            "An account with this email address already exists. "
            "Please sign in as an existing user."
        )

    created = False
    if principal is None:
        if is_admin or not (country_id is not None or is_new_user):
            return OtpRequest(otp=None, account_found=False)

        if country_id is not None:
            get_country(country_id)
        principal = User(
            email=email,
            phone_number=_placeholder_phone(email),
            country_id=country_id,
        )
        db.session.add(principal)
        created = True

    otp = generate_otp()
    principal.otp_hash = hash_secret(otp)
    principal.otp_expiry = utcnow() + timedelta(
        minutes=current_app.config.get("OTP_EXPIRY_MINUTES", 10)
    )
    db.session.commit()

    notification_service.dispatch(notification_service.send_otp_email, email, otp)
    return OtpRequest(otp=otp, account_found=True, user_created=created)


def verify_otp(
    email: str,
    otp: str,
    *,
    is_admin: bool = False,
    country_id: int | None = None,
) -> tuple[User | Admin, bool]:
    """
    Returns (principal, is_new_user). is_new_user is True for users that
    still carry a placeholder phone number.
    """
    if not email or not otp:
        raise ValidationError("Email and OTP are required")

    principal = _find_principal(email, is_admin, country_id)
    if principal is None:
        raise AuthenticationError("Invalid credentials")

    expired = principal.otp_expiry is None or utcnow() > principal.otp_expiry
    if expired or not verify_secret(str(otp), principal.otp_hash):
        raise AuthenticationError("Invalid or expired OTP")

    principal.otp_hash = None
    principal.otp_expiry = None
    db.session.commit()

    is_new_user = isinstance(principal, User) and principal.has_placeholder_phone
    return principal, is_new_user
