# Overview: Single-statement balance, stock and petty-cash updates.

"""
Ledger primitives.

Every numeric counter in the system (product stock, user balance, country
petty cash) is changed here, and only with one UPDATE statement whose SET
clause is computed by the database (col = col + :delta). Decrements that
must respect a floor carry the floor in the WHERE clause, so the check and
the write are the same statement and cannot be interleaved by another
request. Callers inspect the return value and abort their unit of work when
a guarded decrement matched no row.

None of these functions commit.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Product, User, Country
from ..time_utils import utcnow


def adjust_stock(product_id: int, delta: int) -> bool:
    """
    stock += delta. Negative deltas only apply when stock >= -delta.

    Returns False when the product does not exist or the floor guard
    rejected the decrement.
    """
    query = db.session.query(Product).filter(Product.id == product_id)
    if delta < 0:
        query = query.filter(Product.stock >= -delta)

    updated = query.update(
        {Product.stock: Product.stock + delta, Product.updated_at: utcnow()},
        synchronize_session="fetch",
    )
    return updated == 1


def adjust_balance(user_id: int, delta: Decimal) -> bool:
    """balance += delta (no floor; balances are debts)."""
    updated = db.session.query(User).filter(User.id == user_id).update(
        {User.balance: User.balance + delta, User.updated_at: utcnow()},
        synchronize_session="fetch",
    )
    return updated == 1


def adjust_petty_cash(country_id: int, delta: Decimal, *, allow_negative: bool = False) -> bool:
    """
    petty_cash += delta.

    Debits (delta < 0) only apply when petty_cash >= -delta unless
    allow_negative is set.
    """
    query = db.session.query(Country).filter(Country.id == country_id)
    if delta < 0 and not allow_negative:
        query = query.filter(Country.petty_cash >= -delta)

    updated = query.update(
        {Country.petty_cash: Country.petty_cash + delta, Country.updated_at: utcnow()},
        synchronize_session="fetch",
    )
    return updated == 1
