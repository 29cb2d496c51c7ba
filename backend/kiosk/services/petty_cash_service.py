# Overview: Service-layer operations for country petty cash.

"""
Petty cash management.

Policy: petty cash never goes negative, on any path. Manual subtractions,
inventory purchases and restocks all debit through the guarded
ledger_service.adjust_petty_cash and fail with ConflictError when the
balance is short. Every movement writes a PettyCashLog row in the same unit
of work.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Country, PettyCashLog, Product, Transaction, User
from ..errors import ConflictError, ValidationError
from ..validation import quantize_money
from .country_service import get_country
from .concurrency import atomic
from .ledger_service import adjust_petty_cash

OPERATION_ADD = "add"
OPERATION_SUBTRACT = "subtract"
OPERATION_INVENTORY = "inventory"
OPERATION_SETTLEMENT = "settlement"
MANUAL_OPERATIONS = {OPERATION_ADD, OPERATION_SUBTRACT}


def log_movement(
    country_id: int,
    amount: Decimal,
    operation: str,
    *,
    admin_id: int | None = None,
    description: str | None = None,
) -> PettyCashLog:
    """Append an audit row. Does not commit."""
    entry = PettyCashLog(
        country_id=country_id,
        admin_id=admin_id,
        amount=quantize_money(amount),
        operation=operation,
        description=(description or "")[:255],
    )
    db.session.add(entry)
    return entry


def debit(
    country_id: int,
    amount: Decimal,
    operation: str,
    *,
    admin_id: int | None = None,
    description: str | None = None,
) -> None:
    """
    Guarded debit inside the caller's unit of work.

    Raises ConflictError (caller rolls back) when the country cannot cover it.
    """
    amount = quantize_money(amount)
    if amount <= 0:
        return

    if not adjust_petty_cash(country_id, -amount):
        country = db.session.get(Country, country_id)
        raise ConflictError(
            "Insufficient petty cash. Cannot subtract more than available balance.",
            details={
                "required": str(amount),
                "available": str(country.petty_cash) if country else None,
            },
        )
    log_movement(country_id, -amount, operation, admin_id=admin_id, description=description)


def credit(
    country_id: int,
    amount: Decimal,
    operation: str,
    *,
    admin_id: int | None = None,
    description: str | None = None,
) -> None:
    amount = quantize_money(amount)
    if amount <= 0:
        return
    adjust_petty_cash(country_id, amount)
    log_movement(country_id, amount, operation, admin_id=admin_id, description=description)


def get_petty_cash(country_id: int) -> Country:
    return get_country(country_id)


def adjust(
    country_id: int,
    amount: Decimal,
    operation: str,
    *,
    admin_id: int | None = None,
    description: str | None = None,
) -> Country:
    """Manual add/subtract by an admin."""
    if operation not in MANUAL_OPERATIONS:
        raise ValidationError(
            "Invalid request. Amount and operation (add/subtract) are required."
        )
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be a positive number")

    get_country(country_id)

    def _op():
        if operation == OPERATION_ADD:
            credit(country_id, amount, operation, admin_id=admin_id, description=description)
        else:
            debit(country_id, amount, operation, admin_id=admin_id, description=description)

    atomic(_op)
    return get_country(country_id)


def list_logs(country_id: int, limit: int = 100) -> list[PettyCashLog]:
    return (
        db.session.query(PettyCashLog)
        .filter_by(country_id=country_id)
        .order_by(PettyCashLog.created_at.desc(), PettyCashLog.id.desc())
        .limit(limit)
        .all()
    )


def get_country_info(country_id: int) -> dict:
    country = get_country(country_id)

    def _count(model) -> int:
        return int(
            db.session.query(func.count(model.id))
            .filter(model.country_id == country_id)
            .scalar() or 0
        )

    data = country.to_dict()
    data["counts"] = {
        "users": _count(User),
        "products": _count(Product),
        "transactions": _count(Transaction),
    }
    return data
