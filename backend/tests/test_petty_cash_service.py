# Overview: Pytest coverage for ledger primitives and petty-cash adjustments.

from decimal import Decimal

import pytest

from kiosk.errors import ConflictError, ValidationError
from kiosk.models import PettyCashLog
from kiosk.services import ledger_service, petty_cash_service


class TestLedgerPrimitives:
    def test_guarded_stock_decrement(self, db_session, product_iraq):
        assert ledger_service.adjust_stock(product_iraq.id, -5) is True
        assert ledger_service.adjust_stock(product_iraq.id, -1) is False
        db_session.commit()

        db_session.refresh(product_iraq)
        assert product_iraq.stock == 0

    def test_stock_increment(self, db_session, product_iraq):
        assert ledger_service.adjust_stock(product_iraq.id, 3) is True
        db_session.commit()
        db_session.refresh(product_iraq)
        assert product_iraq.stock == 8

    def test_missing_product(self, db_session):
        assert ledger_service.adjust_stock(99999, 1) is False

    def test_balance_adjust_up_and_down(self, db_session, user_iraq):
        ledger_service.adjust_balance(user_iraq.id, Decimal("2.25"))
        ledger_service.adjust_balance(user_iraq.id, Decimal("1.50"))
        db_session.commit()
        db_session.refresh(user_iraq)
        assert user_iraq.balance == Decimal("3.75")

        ledger_service.adjust_balance(user_iraq.id, Decimal("-3.75"))
        db_session.commit()
        db_session.refresh(user_iraq)
        assert user_iraq.balance == Decimal("0.00")

    def test_petty_cash_floor(self, db_session, iraq):
        assert ledger_service.adjust_petty_cash(iraq.id, Decimal("-100.01")) is False
        assert ledger_service.adjust_petty_cash(iraq.id, Decimal("-100.00")) is True
        db_session.commit()
        db_session.refresh(iraq)
        assert iraq.petty_cash == Decimal("0.00")


class TestPettyCashAdjust:
    def test_add(self, db_session, iraq, admin_iraq):
        country = petty_cash_service.adjust(
            iraq.id, Decimal("25.50"), "add", admin_id=admin_iraq.id, description="Top up"
        )
        assert country.petty_cash == Decimal("125.50")

        log = db_session.query(PettyCashLog).one()
        assert log.amount == Decimal("25.50")
        assert log.operation == "add"
        assert log.description == "Top up"

    def test_subtract(self, db_session, iraq):
        country = petty_cash_service.adjust(iraq.id, Decimal("40.00"), "subtract")
        assert country.petty_cash == Decimal("60.00")
        assert db_session.query(PettyCashLog).one().amount == Decimal("-40.00")

    def test_subtract_more_than_available(self, db_session, iraq):
        with pytest.raises(ConflictError):
            petty_cash_service.adjust(iraq.id, Decimal("100.01"), "subtract")

        db_session.refresh(iraq)
        assert iraq.petty_cash == Decimal("100.00")
        assert db_session.query(PettyCashLog).count() == 0

    @pytest.mark.parametrize("amount,operation", [
        (Decimal("0"), "add"),
        (Decimal("-5"), "add"),
        (Decimal("5"), "inventory"),
        (Decimal("5"), "multiply"),
    ])
    def test_invalid_requests(self, db_session, iraq, amount, operation):
        with pytest.raises(ValidationError):
            petty_cash_service.adjust(iraq.id, amount, operation)

    def test_country_info_counts(self, db_session, iraq, user_iraq, product_iraq, product_syria):
        info = petty_cash_service.get_country_info(iraq.id)
        assert info["pettyCash"] == "100.00"
        assert info["counts"] == {"users": 1, "products": 1, "transactions": 0}

    def test_logs_newest_first(self, db_session, iraq):
        petty_cash_service.adjust(iraq.id, Decimal("1.00"), "add")
        petty_cash_service.adjust(iraq.id, Decimal("2.00"), "add")

        logs = petty_cash_service.list_logs(iraq.id)
        assert [log.amount for log in logs] == [Decimal("2.00"), Decimal("1.00")]
