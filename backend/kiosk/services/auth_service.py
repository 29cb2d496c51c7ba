# Overview: Service-layer operations for auth; accounts, passwords, profile and country scope.

"""
Authentication service.

Users sign in with phone number + password (or email OTP, see otp_service).
Admins sign in with username + password. Passwords are bcrypt hashed;
BCRYPT_ROUNDS (default 12) sets the cost factor.
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, Admin
from ..errors import ConflictError, ValidationError
from .country_service import get_country
from .session_service import ROLE_ADMIN, rebind_country


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_secret(secret: str) -> str:
    """bcrypt hash of a password or one-time code."""
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(secret.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_secret(secret: str, secret_hash: str | None) -> bool:
    """Timing-safe comparison; False for missing or malformed hashes."""
    if not secret or not secret_hash:
        return False
    try:
        return bcrypt.checkpw(secret.encode('utf-8'), secret_hash.encode('utf-8'))
    except ValueError:
        return False


def hash_password(password: str) -> str:
    validate_password_strength(password)
    return hash_secret(password)


def create_user(
    phone_number: str,
    password: str | None,
    country_id: int,
    email: str | None = None,
) -> User:
    """Phone number and email must be unique within the country."""
    get_country(country_id)

    existing = db.session.query(User).filter(
        User.country_id == country_id,
        db.or_(User.phone_number == phone_number, User.email == email) if email
        else User.phone_number == phone_number,
    ).first()
    if existing:
        raise ConflictError("Phone number or email already exists in this country")

    user = User(
        phone_number=phone_number,
        email=email,
        password_hash=hash_password(password) if password else None,
        country_id=country_id,
    )
    db.session.add(user)
    db.session.commit()
    return user


def create_admin(
    username: str,
    password: str,
    country_id: int | None = None,
    email: str | None = None,
) -> Admin:
    if country_id is not None:
        get_country(country_id)

    existing = db.session.query(Admin).filter(
        db.or_(Admin.username == username, Admin.email == email) if email
        else Admin.username == username
    ).first()
    if existing:
        raise ConflictError("Admin username or email already exists")

    admin = Admin(
        username=username,
        email=email,
        password_hash=hash_password(password),
        country_id=country_id,
    )
    db.session.add(admin)
    db.session.commit()
    return admin


def authenticate_user(phone_number: str, password: str, country_id: int | None = None) -> User | None:
    query = db.session.query(User).filter(User.phone_number == phone_number)
    if country_id is not None:
        query = query.filter(User.country_id == country_id)

    user = query.first()
    if user and verify_secret(password, user.password_hash):
        return user
    return None


def authenticate_admin(username: str, password: str) -> Admin | None:
    admin = db.session.query(Admin).filter(
        db.or_(Admin.username == username, Admin.email == username)
    ).first()
    if admin and verify_secret(password, admin.password_hash):
        return admin
    return None


def complete_profile(user: User, phone_number: str, password: str | None = None) -> User:
    """Replace the OTP placeholder phone number (and optionally set a password)."""
    taken = db.session.query(User).filter(
        User.phone_number == phone_number,
        User.country_id == user.country_id,
        User.id != user.id,
    ).first()
    if taken:
        raise ConflictError("Phone number already in use")

    if password:
        user.password_hash = hash_password(password)
    user.phone_number = phone_number
    db.session.commit()
    return user


def update_country(ctx, country_id: int):
    """
    Users move to another country; admins change their selected country.
    The current session follows the new scope.
    """
    country = get_country(country_id)

    if ctx.role == ROLE_ADMIN:
        ctx.principal.last_selected_country_id = country.id
    else:
        clash = db.session.query(User).filter(
            User.country_id == country.id,
            User.phone_number == ctx.principal.phone_number,
            User.id != ctx.principal.id,
        ).first()
        if clash:
            raise ConflictError("Phone number already in use in that country")
        ctx.principal.country_id = country.id

    rebind_country(ctx.session, country.id)
    ctx.country_id = country.id
    return country
