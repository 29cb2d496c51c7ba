# Overview: Threaded checkout and settlement races against a file-backed database.

"""
Concurrency tests.

Each worker thread runs in its own app context (and therefore its own
database session) against a temporary SQLite file, the way concurrent
requests would.
"""

import threading
from decimal import Decimal

import pytest

from kiosk import create_app
from kiosk.errors import ConflictError, InsufficientStock, TransactionFailed
from kiosk.extensions import db
from kiosk.models import Country, PettyCashLog, Product, Transaction, User
from kiosk.services import settlement_service
from kiosk.services.settlement_service import settle_user
from kiosk.services.transaction_service import Basket, BasketLine, record_transaction


WORKERS = 5


@pytest.fixture
def concurrent_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'BCRYPT_ROUNDS': 4,
        'NOTIFICATIONS_ASYNC': False,
        'MAIL_SERVER': None,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def seeded(concurrent_app):
    """One country, WORKERS users and a product with a single unit left."""
    with concurrent_app.app_context():
        country = Country(name="Iraq", petty_cash=Decimal("100.00"))
        db.session.add(country)
        db.session.flush()

        users = [
            User(country_id=country.id, phone_number=f"+96400000000{i}", balance=Decimal("0.00"))
            for i in range(WORKERS)
        ]
        product = Product(
            country_id=country.id,
            name="Last Snickers",
            image="/products/snickers.jpg",
            purchase_cost=Decimal("1.00"),
            selling_price=Decimal("1.50"),
            stock=1,
        )
        db.session.add_all(users + [product])
        db.session.commit()
        return {
            "country_id": country.id,
            "user_ids": [u.id for u in users],
            "product_id": product.id,
        }


def run_workers(app, target, args_list):
    barrier = threading.Barrier(len(args_list))
    results = []
    lock = threading.Lock()

    def worker(*args):
        with app.app_context():
            barrier.wait()
            try:
                target(*args)
                outcome = "ok"
            except Exception as exc:
                outcome = type(exc).__name__
            finally:
                db.session.remove()
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker, args=args) for args in args_list]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


class TestConcurrentCheckout:
    def test_last_unit_is_sold_once(self, concurrent_app, seeded):
        basket = Basket(lines=(BasketLine(product_id=seeded["product_id"], quantity=1),))

        results = run_workers(
            concurrent_app,
            lambda user_id: record_transaction(user_id, basket),
            [(user_id,) for user_id in seeded["user_ids"]],
        )

        assert len(results) == WORKERS
        assert results.count("ok") == 1
        assert set(results) <= {"ok", InsufficientStock.__name__, TransactionFailed.__name__}

        with concurrent_app.app_context():
            product = db.session.get(Product, seeded["product_id"])
            assert product.stock == 0
            assert db.session.query(Transaction).count() == 1

            balances = [db.session.get(User, uid).balance for uid in seeded["user_ids"]]
            assert sorted(balances) == [Decimal("0.00")] * (WORKERS - 1) + [Decimal("1.50")]


class TestConcurrentSettlement:
    def test_balance_is_credited_once(self, concurrent_app, seeded):
        buyer_id = seeded["user_ids"][0]
        with concurrent_app.app_context():
            record_transaction(
                buyer_id,
                Basket(lines=(BasketLine(product_id=seeded["product_id"], quantity=1),)),
            )

        results = run_workers(
            concurrent_app,
            lambda: settle_user(buyer_id, seeded["country_id"]),
            [() for _ in range(3)],
        )

        assert "ok" in results
        assert set(results) <= {"ok", ConflictError.__name__, TransactionFailed.__name__}

        with concurrent_app.app_context():
            country = db.session.get(Country, seeded["country_id"])
            assert country.petty_cash == Decimal("101.50")
            assert db.session.get(User, buyer_id).balance == Decimal("0.00")
            assert db.session.query(PettyCashLog).filter_by(operation="settlement").count() == 1


class TestCheckoutDuringSettlement:
    def test_checkout_committed_mid_settlement_stays_owed(self, concurrent_app, seeded, monkeypatch):
        """
        A checkout that commits after settlement has read the unsettled set
        but before it flips it keeps its debt and stays unsettled.
        """
        buyer_id = seeded["user_ids"][0]
        with concurrent_app.app_context():
            product = Product(
                country_id=seeded["country_id"],
                name="Sandwich",
                image="/products/sandwich.jpg",
                purchase_cost=Decimal("1.00"),
                selling_price=Decimal("2.00"),
                stock=10,
            )
            db.session.add(product)
            db.session.commit()
            product_id = product.id
            record_transaction(buyer_id, Basket(lines=(BasketLine(product_id=product_id, quantity=5),)))

        late_checkout = []

        def checkout_in_other_request():
            with concurrent_app.app_context():
                transaction = record_transaction(
                    buyer_id, Basket(lines=(BasketLine(product_id=product_id, quantity=1),))
                )
                late_checkout.append(transaction.id)
                db.session.remove()

        real_utcnow = settlement_service.utcnow

        def utcnow_with_interleaved_checkout():
            # Runs while the flip UPDATE is being built, after the unsettled set was read.
            if not late_checkout:
                thread = threading.Thread(target=checkout_in_other_request)
                thread.start()
                thread.join(timeout=30)
            return real_utcnow()

        monkeypatch.setattr(settlement_service, "utcnow", utcnow_with_interleaved_checkout)

        with concurrent_app.app_context():
            result = settle_user(buyer_id, seeded["country_id"])

            assert len(late_checkout) == 1
            assert result.settled_amount == Decimal("10.00")
            assert result.transaction_count == 1

            buyer = db.session.get(User, buyer_id)
            assert buyer.balance == Decimal("2.00")
            assert result.updated_balance == Decimal("2.00")

            late = db.session.get(Transaction, late_checkout[0])
            assert late.settled is False
            assert late.total == Decimal("2.00")

            country = db.session.get(Country, seeded["country_id"])
            assert country.petty_cash == Decimal("110.00")
            db.session.remove()
