# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management with country scope

Tokens are cryptographically secure, hashed in database, and time-limited.
Sessions capture the principal (user or admin) and its country scope at
creation time, so every authenticated request knows who is acting and in
which country without extra lookups.

- Random tokens (32 bytes), SHA-256 hashed before storage
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, Admin
from ..time_utils import utcnow


SESSION_IDLE_TIMEOUT = timedelta(hours=2)

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass
class SessionContext:
    """
    Identity output contract: who is acting, with which role, in which country.
    """
    principal: User | Admin
    role: str
    session: SessionToken
    country_id: int | None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.principal.id,
            "name": self.principal.username if self.is_admin else self.principal.phone_number,
            "email": self.principal.email or "",
            "role": self.role,
            "countryId": self.country_id,
        }


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of the token for database storage.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def create_session(
    principal: User | Admin,
    country_id: int | None = None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for a user or admin.

    Users are always scoped to their own country. Admins are scoped to
    country_id when given, else to their selected/home country.

    Returns (session_record, plaintext_token).
    """
    if isinstance(principal, Admin):
        principal_type = ROLE_ADMIN
        scope = country_id if country_id is not None else principal.scope_country_id
    else:
        principal_type = ROLE_USER
        scope = principal.country_id

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        principal_type=principal_type,
        user_id=principal.id if principal_type == ROLE_USER else None,
        admin_id=principal.id if principal_type == ROLE_ADMIN else None,
        country_id=scope,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    current_app.logger.info(
        "Session created for %s %s (country %s) from %s %s",
        principal_type, principal.id, scope, ip_address or "-", user_agent or "-",
    )
    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a token, or None if it is unknown,
    revoked, expired, idle too long, or its principal no longer exists.

    Updates last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    principal = session.admin if session.principal_type == ROLE_ADMIN else session.user
    if principal is None:
        _revoke(session, "Principal deleted")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        principal=principal,
        role=session.principal_type,
        session=session,
        country_id=session.country_id,
    )


def rebind_country(session: SessionToken, country_id: int) -> None:
    """Move an existing session to another country scope."""
    session.country_id = country_id
    db.session.commit()


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """
    Delete expired or revoked sessions older than retention_days.

    Returns count of sessions deleted.
    """
    cutoff = utcnow() - timedelta(days=retention_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
