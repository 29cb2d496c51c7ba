# Overview: Pytest coverage for checkout on credit (transaction recorder).

"""
Transaction recorder tests.

Verifies:
- Stock decreases and balance increases by exactly the basket total
- Prices come from the catalog, never from the request
- A basket that cannot be fully served changes nothing
- Country scope between buyer, products and acting admin
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import make_product, token_for
from kiosk.errors import (
    InsufficientStock,
    ProductNotFound,
    ScopeViolation,
    TransactionFailed,
    UserNotFound,
    ValidationError,
)
from kiosk.models import Transaction, TransactionItem, User
from kiosk.services import notification_service, transaction_service
from kiosk.services.session_service import validate_session
from kiosk.services.transaction_service import Basket, BasketLine, record_transaction


def basket(*lines):
    return Basket(lines=tuple(BasketLine(product_id=p, quantity=q) for p, q in lines))


class TestBasket:
    def test_from_payload_ignores_client_price(self):
        result = Basket.from_payload([{"productId": 7, "quantity": 2, "price": "0.01"}])
        assert result.lines == (BasketLine(product_id=7, quantity=2),)

    def test_quantities_aggregates_duplicates(self):
        result = basket((1, 2), (2, 1), (1, 3))
        assert result.quantities() == {1: 5, 2: 1}

    @pytest.mark.parametrize("items", [None, [], "abc", [{"productId": 1, "quantity": 0}],
                                       [{"productId": 1, "quantity": -1}],
                                       [{"productId": 1, "quantity": 1.5}],
                                       [{"quantity": 1}]])
    def test_invalid_payloads_rejected(self, items):
        with pytest.raises(ValidationError):
            Basket.from_payload(items)


class TestRecordTransaction:
    def test_checkout_decrements_stock_and_charges_balance(self, db_session, user_iraq, product_iraq):
        transaction = record_transaction(user_iraq.id, basket((product_iraq.id, 3)))

        assert transaction.total == Decimal("4.50")
        assert transaction.settled is False
        assert transaction.country_id == user_iraq.country_id
        assert len(transaction.items) == 1
        assert transaction.items[0].price == Decimal("1.50")
        assert transaction.items[0].quantity == 3

        db_session.refresh(product_iraq)
        db_session.refresh(user_iraq)
        assert product_iraq.stock == 2
        assert user_iraq.balance == Decimal("4.50")

    def test_insufficient_stock_changes_nothing(self, db_session, user_iraq, product_iraq):
        record_transaction(user_iraq.id, basket((product_iraq.id, 3)))

        with pytest.raises(InsufficientStock) as exc_info:
            record_transaction(user_iraq.id, basket((product_iraq.id, 3)))

        assert exc_info.value.details["available"] == 2
        assert exc_info.value.details["requested"] == 3

        db_session.refresh(product_iraq)
        db_session.refresh(user_iraq)
        assert product_iraq.stock == 2
        assert user_iraq.balance == Decimal("4.50")
        assert db_session.query(Transaction).count() == 1

    def test_exact_stock_can_be_bought(self, db_session, user_iraq, product_iraq):
        record_transaction(user_iraq.id, basket((product_iraq.id, 5)))
        db_session.refresh(product_iraq)
        assert product_iraq.stock == 0

    def test_duplicate_lines_checked_against_combined_quantity(self, db_session, user_iraq, product_iraq):
        with pytest.raises(InsufficientStock):
            record_transaction(user_iraq.id, basket((product_iraq.id, 3), (product_iraq.id, 3)))

        db_session.refresh(product_iraq)
        assert product_iraq.stock == 5

    def test_duplicate_lines_kept_as_separate_items(self, db_session, user_iraq, product_iraq):
        transaction = record_transaction(user_iraq.id, basket((product_iraq.id, 1), (product_iraq.id, 2)))

        assert [item.quantity for item in transaction.items] == [1, 2]
        assert transaction.total == Decimal("4.50")
        db_session.refresh(product_iraq)
        assert product_iraq.stock == 2

    def test_multi_product_basket_is_all_or_nothing(self, db_session, iraq, user_iraq, product_iraq):
        scarce = make_product(db_session, iraq, name="Sandwich", price="3.00", cost="2.00", stock=1)

        with pytest.raises(InsufficientStock):
            record_transaction(user_iraq.id, basket((product_iraq.id, 2), (scarce.id, 2)))

        db_session.refresh(product_iraq)
        db_session.refresh(scarce)
        db_session.refresh(user_iraq)
        assert product_iraq.stock == 5
        assert scarce.stock == 1
        assert user_iraq.balance == Decimal("0.00")
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(TransactionItem).count() == 0

    def test_total_sums_line_prices(self, db_session, iraq, user_iraq, product_iraq):
        cola = make_product(db_session, iraq, name="Cola", price="1.25", cost="0.80", stock=10)

        transaction = record_transaction(user_iraq.id, basket((product_iraq.id, 2), (cola.id, 3)))

        assert transaction.total == Decimal("6.75")
        db_session.refresh(user_iraq)
        assert user_iraq.balance == Decimal("6.75")

    def test_product_from_other_country_not_found(self, db_session, user_iraq, product_syria):
        with pytest.raises(ProductNotFound):
            record_transaction(user_iraq.id, basket((product_syria.id, 1)))

        db_session.refresh(product_syria)
        assert product_syria.stock == 10

    def test_unknown_product(self, db_session, user_iraq):
        with pytest.raises(ProductNotFound):
            record_transaction(user_iraq.id, basket((99999, 1)))

    def test_unknown_user(self, db_session, product_iraq):
        with pytest.raises(UserNotFound):
            record_transaction(99999, basket((product_iraq.id, 1)))

    def test_empty_basket(self, db_session, user_iraq):
        with pytest.raises(ValidationError):
            record_transaction(user_iraq.id, Basket(lines=()))

    def test_admin_scope_must_match_buyer_country(self, db_session, user_iraq, syria, product_iraq):
        with pytest.raises(ScopeViolation):
            record_transaction(user_iraq.id, basket((product_iraq.id, 1)), scope_country_id=syria.id)

        db_session.refresh(product_iraq)
        assert product_iraq.stock == 5

    def test_user_without_country_joins_default_country(self, db_session, iraq, product_iraq):
        user = User(phone_number="+10000000000", balance=Decimal("0.00"))
        db_session.add(user)
        db_session.commit()

        transaction = record_transaction(user.id, basket((product_iraq.id, 1)))

        db_session.refresh(user)
        assert user.country_id == iraq.id
        assert transaction.country_id == iraq.id

    def test_persistence_failure_rolls_back(self, db_session, monkeypatch, user_iraq, product_iraq):
        def broken_adjust_balance(user_id, delta):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(transaction_service, "adjust_balance", broken_adjust_balance)

        with pytest.raises(TransactionFailed):
            record_transaction(user_iraq.id, basket((product_iraq.id, 2)))

        db_session.refresh(product_iraq)
        db_session.refresh(user_iraq)
        assert product_iraq.stock == 5
        assert user_iraq.balance == Decimal("0.00")
        assert db_session.query(Transaction).count() == 0

    def test_notification_failure_does_not_affect_checkout(self, db_session, monkeypatch, user_iraq, product_iraq):
        sent = []

        def failing_send_email(to, subject, text):
            sent.append(to)
            raise RuntimeError("smtp down")

        monkeypatch.setattr(notification_service, "send_email", failing_send_email)

        transaction = record_transaction(user_iraq.id, basket((product_iraq.id, 1)))

        assert transaction.id is not None
        assert sent == ["buyer@iraq.example"]
        db_session.refresh(product_iraq)
        assert product_iraq.stock == 4


class TestListTransactions:
    def test_user_sees_own_admin_sees_country(
        self, db_session, admin_iraq, user_iraq, user_syria, product_iraq, product_syria
    ):

        record_transaction(user_iraq.id, basket((product_iraq.id, 1)))
        record_transaction(user_syria.id, basket((product_syria.id, 1)))

        user_ctx = validate_session(token_for(user_iraq))
        admin_ctx = validate_session(token_for(admin_iraq))

        assert [t.user_id for t in transaction_service.list_transactions(user_ctx)] == [user_iraq.id]
        admin_view = transaction_service.list_transactions(admin_ctx)
        assert [t.user_id for t in admin_view] == [user_iraq.id]
