# Overview: Service-layer operations for settling user balances.

"""
Settlement processor.

Settling a user marks all of their unsettled transactions as settled, zeroes
their balance and credits the settled amount to their country's petty cash,
as one unit of work.

- Only the transactions read at the start are settled, and the balance is
  reduced by exactly their total (balance = balance - amount, computed by
  the database). A checkout that commits while the settlement is running
  keeps its debt and stays unsettled. The user row lock narrows that window
  on backends that honor SELECT ... FOR UPDATE; correctness does not
  depend on it.
- Transactions are flipped with UPDATE ... WHERE settled = false. If fewer
  rows flip than were read, another settlement got there first and this one
  aborts.
- The petty-cash credit is the sum of the transaction totals. The stored
  balance should be equal; a divergence is logged and the remainder stays
  on the balance.
- Settling a user with nothing unsettled succeeds with amount 0 and changes
  nothing, so repeated settlement is idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Country, Transaction, User
from ..errors import (
    ConflictError,
    CountryNotFound,
    KioskError,
    ScopeViolation,
    TransactionFailed,
    UserNotFound,
)
from ..time_utils import utcnow
from ..validation import money_str, quantize_money
from .concurrency import atomic, lock_for_update
from .ledger_service import adjust_balance
from . import petty_cash_service


@dataclass
class SettlementResult:
    user_id: int
    settled_amount: Decimal
    transaction_count: int
    balance_before: Decimal
    updated_balance: Decimal
    updated_petty_cash: Decimal

    @property
    def nothing_to_settle(self) -> bool:
        return self.transaction_count == 0

    def to_dict(self) -> dict:
        return {
            "message": (
                "Nothing to settle" if self.nothing_to_settle
                else "Balance settled successfully"
            ),
            "userId": self.user_id,
            "settledAmount": money_str(self.settled_amount),
            "transactionCount": self.transaction_count,
            "balanceBefore": money_str(self.balance_before),
            "updatedBalance": money_str(self.updated_balance),
            "updatedPettyCash": money_str(self.updated_petty_cash),
        }


def settle_user(user_id: int, admin_country_id: int | None, admin_id: int | None = None) -> SettlementResult:
    """Settle every outstanding transaction of a user in the admin's country."""

    def _op():
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if user is None:
            raise UserNotFound("User not found")

        if admin_country_id is None or user.country_id != admin_country_id:
            raise ScopeViolation("You can only settle balances for users in your country")

        if db.session.get(Country, admin_country_id) is None:
            raise CountryNotFound("Country not found")

        balance_before = quantize_money(Decimal(user.balance or 0))
        unsettled = (
            db.session.query(Transaction)
            .filter(Transaction.user_id == user.id, Transaction.settled.is_(False))
            .order_by(Transaction.id.asc())
            .all()
        )

        if not unsettled:
            if balance_before != 0:
                current_app.logger.warning(
                    "User %s has balance %s but no unsettled transactions", user.id, balance_before
                )
            return Decimal("0.00"), 0, balance_before

        amount = quantize_money(sum((t.total for t in unsettled), Decimal("0.00")))
        if amount != balance_before:
            current_app.logger.warning(
                "Settlement for user %s: balance %s differs from unsettled total %s",
                user.id, balance_before, amount,
            )

        ids = [t.id for t in unsettled]
        flipped = (
            db.session.query(Transaction)
            .filter(Transaction.id.in_(ids), Transaction.settled.is_(False))
            .update(
                {Transaction.settled: True, Transaction.settled_at: utcnow()},
                synchronize_session="fetch",
            )
        )
        if flipped != len(ids):
            raise ConflictError("Balance is already being settled; reload and try again")

        adjust_balance(user.id, -amount)
        petty_cash_service.credit(
            admin_country_id,
            amount,
            petty_cash_service.OPERATION_SETTLEMENT,
            admin_id=admin_id,
            description=f"Settlement of {len(ids)} transaction(s) for user {user.id}",
        )
        return amount, len(ids), balance_before

    try:
        amount, count, balance_before = atomic(_op)
    except KioskError:
        raise
    except SQLAlchemyError as exc:
        current_app.logger.exception("Settlement for user %s rolled back", user_id)
        raise TransactionFailed("An error occurred while settling the balance") from exc

    country = db.session.get(Country, admin_country_id)
    user = db.session.get(User, user_id)
    return SettlementResult(
        user_id=user_id,
        settled_amount=amount,
        transaction_count=count,
        balance_before=balance_before,
        updated_balance=quantize_money(Decimal(user.balance or 0)),
        updated_petty_cash=quantize_money(Decimal(country.petty_cash)),
    )
