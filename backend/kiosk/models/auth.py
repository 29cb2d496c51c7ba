from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class User(db.Model):
    """
    Kiosk customer buying on credit.

    Phone number and email are unique within a country, not globally.
    Users created through the email OTP flow carry a "temp_..." placeholder
    phone number until they complete their profile.

    balance is what the user owes. It is only changed through
    ledger_service (increment on checkout, decrement by the settled amount
    on settlement).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("country_id", "phone_number", name="uq_users_country_phone"),
        db.UniqueConstraint("country_id", "email", name="uq_users_country_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=True, index=True)

    phone_number = db.Column(db.String(255), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True, index=True)

    # Bcrypt hashes; password is optional for OTP-only accounts
    password_hash = db.Column(db.String(255), nullable=True)
    otp_hash = db.Column(db.String(255), nullable=True)
    otp_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    country = db.relationship("Country", backref=db.backref("users", lazy=True))

    @property
    def has_placeholder_phone(self) -> bool:
        return bool(self.phone_number) and self.phone_number.startswith("temp_")

    def __repr__(self) -> str:
        return f"<User id={self.id} phone={self.phone_number!r} country_id={self.country_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phoneNumber": self.phone_number,
            "email": self.email,
            "balance": money_str(self.balance),
            "countryId": self.country_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Admin(db.Model):
    """
    Kiosk administrator.

    Admins have a home country and a selected country; the selected country
    is the scope captured into their sessions.
    """
    __tablename__ = "admins"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=True, unique=True)

    password_hash = db.Column(db.String(255), nullable=False)
    otp_hash = db.Column(db.String(255), nullable=True)
    otp_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=True)
    last_selected_country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    country = db.relationship("Country", foreign_keys=[country_id])
    last_selected_country = db.relationship("Country", foreign_keys=[last_selected_country_id])

    @property
    def scope_country_id(self) -> int | None:
        return self.last_selected_country_id or self.country_id

    def __repr__(self) -> str:
        return f"<Admin id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "countryId": self.country_id,
            "lastSelectedCountryId": self.last_selected_country_id,
            "createdAt": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Server-side session record.

    The plaintext token is only ever returned to the client; the database
    stores its SHA-256 hash. principal_type is "user" or "admin" and selects
    which of user_id / admin_id is set. country_id is the scope captured when
    the session was created (moved only by update-country).
    """
    __tablename__ = "session_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    principal_type = db.Column(db.String(16), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True, index=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
    admin = db.relationship("Admin", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "principalType": self.principal_type,
            "countryId": self.country_id,
            "createdAt": to_utc_z(self.created_at),
            "lastUsedAt": to_utc_z(self.last_used_at),
            "expiresAt": to_utc_z(self.expires_at),
            "isRevoked": self.is_revoked,
        }
