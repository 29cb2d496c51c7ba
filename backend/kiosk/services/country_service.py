# Overview: Service-layer operations for countries (tenants).

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Country
from ..errors import CountryNotFound, ConflictError

DEFAULT_COUNTRY_NAME = "Default Country"


def list_countries() -> list[Country]:
    return db.session.query(Country).order_by(Country.name.asc()).all()


def get_country(country_id: int) -> Country:
    country = db.session.get(Country, country_id)
    if country is None:
        raise CountryNotFound("Country not found")
    return country


def create_country(name: str, petty_cash: Decimal = Decimal("0.00")) -> Country:
    existing = db.session.query(Country).filter_by(name=name).first()
    if existing:
        raise ConflictError(f"Country {name!r} already exists")

    country = Country(name=name, petty_cash=petty_cash)
    db.session.add(country)
    db.session.commit()
    return country


def get_or_create_default_country() -> Country:
    """
    Return the first country, creating a placeholder when none exists.

    Used for users that were created without a country. Does not commit;
    the caller's unit of work owns the insert.
    """
    country = db.session.query(Country).order_by(Country.id.asc()).first()
    if country is not None:
        return country

    country = Country(name=DEFAULT_COUNTRY_NAME, petty_cash=Decimal("0.00"))
    db.session.add(country)
    db.session.flush()
    current_app.logger.info("Created default country id=%s", country.id)
    return country
