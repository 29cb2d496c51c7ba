"""
Pytest fixtures for kiosk backend tests.

Provides an in-memory database, two countries (tenants) with an admin, a
user and a product each, and helpers to mint session tokens without going
through the login endpoints.
"""

from decimal import Decimal

import pytest
from kiosk import create_app
from kiosk.extensions import db
from kiosk.models import Country, Admin, User, Product
from kiosk.services.auth_service import hash_password
from kiosk.services.session_service import create_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'NOTIFICATIONS_ASYNC': False,
        'MAIL_SERVER': None,
        'EXPOSE_OTP_IN_RESPONSE': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def iraq(db_session):
    """Country A with 100.00 petty cash."""
    country = Country(name="Iraq", petty_cash=Decimal("100.00"))
    db_session.add(country)
    db_session.commit()
    return country


@pytest.fixture(scope='function')
def syria(db_session):
    """Country B with 100.00 petty cash."""
    country = Country(name="Syria", petty_cash=Decimal("100.00"))
    db_session.add(country)
    db_session.commit()
    return country


@pytest.fixture(scope='function')
def admin_iraq(db_session, iraq):
    admin = Admin(
        username="admin_iraq",
        email="admin_iraq@kiosk.local",
        password_hash=hash_password("admin123"),
        country_id=iraq.id,
    )
    db_session.add(admin)
    db_session.commit()
    return admin


@pytest.fixture(scope='function')
def admin_syria(db_session, syria):
    admin = Admin(
        username="admin_syria",
        password_hash=hash_password("admin123"),
        country_id=syria.id,
    )
    db_session.add(admin)
    db_session.commit()
    return admin


@pytest.fixture(scope='function')
def user_iraq(db_session, iraq):
    user = User(
        country_id=iraq.id,
        phone_number="+9641234567890",
        email="buyer@iraq.example",
        password_hash=hash_password("user123"),
        balance=Decimal("0.00"),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user_syria(db_session, syria):
    user = User(
        country_id=syria.id,
        phone_number="+9631234567890",
        password_hash=hash_password("user123"),
        balance=Decimal("0.00"),
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_product(db_session, country, name="Snickers", price="1.50", cost="1.00", stock=5):
    product = Product(
        country_id=country.id,
        name=name,
        image=f"/products/{name.lower()}.jpg",
        purchase_cost=Decimal(cost),
        selling_price=Decimal(price),
        stock=stock,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_iraq(db_session, iraq):
    """5 in stock at 1.50."""
    return make_product(db_session, iraq)


@pytest.fixture(scope='function')
def product_syria(db_session, syria):
    return make_product(db_session, syria, name="Water", price="0.75", cost="0.50", stock=10)


def token_for(principal, country_id=None) -> str:
    """Helper to mint a session token for a user or admin."""
    _, token = create_session(principal, country_id=country_id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_iraq_headers(admin_iraq):
    return auth_headers(token_for(admin_iraq))


@pytest.fixture(scope='function')
def admin_syria_headers(admin_syria):
    return auth_headers(token_for(admin_syria))


@pytest.fixture(scope='function')
def user_iraq_headers(user_iraq):
    return auth_headers(token_for(user_iraq))


@pytest.fixture(scope='function')
def user_syria_headers(user_syria):
    return auth_headers(token_for(user_syria))
