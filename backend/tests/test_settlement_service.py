# Overview: Pytest coverage for settling user balances into petty cash.

from decimal import Decimal

import pytest

from conftest import make_product
from kiosk.errors import ScopeViolation, UserNotFound
from kiosk.models import PettyCashLog, Transaction
from kiosk.services.settlement_service import settle_user
from kiosk.services.transaction_service import Basket, BasketLine, record_transaction


def buy(user, product, quantity):
    return record_transaction(user.id, Basket(lines=(BasketLine(product.id, quantity),)))


@pytest.fixture
def indebted_user(db_session, iraq, user_iraq):
    """user_iraq owing 10.00 over two transactions."""
    product = make_product(db_session, iraq, name="Sandwich", price="2.50", cost="2.00", stock=10)
    buy(user_iraq, product, 2)
    buy(user_iraq, product, 2)
    return user_iraq


class TestSettleUser:
    def test_settlement_moves_balance_into_petty_cash(self, db_session, iraq, admin_iraq, indebted_user):
        result = settle_user(indebted_user.id, iraq.id, admin_id=admin_iraq.id)

        assert result.settled_amount == Decimal("10.00")
        assert result.transaction_count == 2
        assert result.balance_before == Decimal("10.00")
        assert result.updated_petty_cash == Decimal("110.00")

        db_session.refresh(indebted_user)
        db_session.refresh(iraq)
        assert indebted_user.balance == Decimal("0.00")
        assert iraq.petty_cash == Decimal("110.00")

        transactions = db_session.query(Transaction).filter_by(user_id=indebted_user.id).all()
        assert all(t.settled for t in transactions)
        assert all(t.settled_at is not None for t in transactions)

        log = db_session.query(PettyCashLog).filter_by(operation="settlement").one()
        assert log.amount == Decimal("10.00")
        assert log.admin_id == admin_iraq.id

    def test_second_settlement_is_a_no_op(self, db_session, iraq, indebted_user):
        settle_user(indebted_user.id, iraq.id)
        again = settle_user(indebted_user.id, iraq.id)

        assert again.settled_amount == Decimal("0.00")
        assert again.transaction_count == 0
        assert again.to_dict()["message"] == "Nothing to settle"

        db_session.refresh(iraq)
        assert iraq.petty_cash == Decimal("110.00")
        assert db_session.query(PettyCashLog).filter_by(operation="settlement").count() == 1

    def test_purchases_after_settlement_are_owed_again(self, db_session, iraq, indebted_user):
        settle_user(indebted_user.id, iraq.id)
        product = make_product(db_session, iraq, name="Gum", price="0.50", cost="0.10", stock=3)
        buy(indebted_user, product, 2)

        db_session.refresh(indebted_user)
        assert indebted_user.balance == Decimal("1.00")

        result = settle_user(indebted_user.id, iraq.id)
        assert result.settled_amount == Decimal("1.00")
        assert result.transaction_count == 1

    def test_other_country_admin_cannot_settle(self, db_session, iraq, syria, indebted_user):
        with pytest.raises(ScopeViolation):
            settle_user(indebted_user.id, syria.id)

        db_session.refresh(indebted_user)
        db_session.refresh(syria)
        assert indebted_user.balance == Decimal("10.00")
        assert syria.petty_cash == Decimal("100.00")

    def test_unscoped_admin_cannot_settle(self, db_session, indebted_user):
        with pytest.raises(ScopeViolation):
            settle_user(indebted_user.id, None)

    def test_unknown_user(self, db_session, iraq):
        with pytest.raises(UserNotFound):
            settle_user(99999, iraq.id)

    def test_result_serialization(self, db_session, iraq, indebted_user):
        body = settle_user(indebted_user.id, iraq.id).to_dict()

        assert body["message"] == "Balance settled successfully"
        assert body["settledAmount"] == "10.00"
        assert body["transactionCount"] == 2
        assert body["updatedBalance"] == "0.00"
        assert body["updatedPettyCash"] == "110.00"
