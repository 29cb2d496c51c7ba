from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class Country(db.Model):
    """
    Tenant root: every kiosk deployment belongs to a Country.

    Users, products and transactions are all country-scoped. Admin queries
    are always filtered by the admin's selected country.

    petty_cash is debited when inventory is bought and credited when user
    debts are settled. It never goes negative (guarded conditional update,
    see ledger_service.adjust_petty_cash).
    """
    __tablename__ = "countries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True, index=True)
    petty_cash = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Country id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "pettyCash": money_str(self.petty_cash),
            "createdAt": to_utc_z(self.created_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name}


class PettyCashLog(db.Model):
    """
    Append-only audit trail of petty-cash movements.

    operation:
    - add / subtract: manual adjustment by an admin
    - inventory: debit for product creation or restock
    - settlement: credit from settling a user's balance
    """
    __tablename__ = "petty_cash_logs"
    __table_args__ = (
        db.Index("ix_petty_cash_logs_country_created", "country_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id"), nullable=True)

    # Signed: positive credits, negative debits
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    operation = db.Column(db.String(16), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    country = db.relationship("Country", backref=db.backref("petty_cash_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "countryId": self.country_id,
            "adminId": self.admin_id,
            "amount": money_str(self.amount),
            "operation": self.operation,
            "description": self.description,
            "createdAt": to_utc_z(self.created_at),
        }
