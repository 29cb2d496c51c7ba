# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/kiosk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system seed --yes
#   DEV only: wipe data and load Iraq/Syria with admins, users and products.
#
# Country management (MULTI-TENANT):
# - python -m flask countries list
# - python -m flask countries create --name "Jordan" --petty-cash 500
#
# Accounts:
# - python -m flask admins create --username admin_jordan --country-id 3
# - python -m flask users create --country-id 3 --phone "+962700000000"
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import (
    Admin, Country, PettyCashLog, Product, SessionToken, Transaction, TransactionItem, User,
)
from .errors import KioskError
from .services import auth_service, country_service, session_service


SEED_COUNTRIES = ("Iraq", "Syria")
SEED_PETTY_CASH = Decimal("1000.00")

SEED_PRODUCTS = [
    ("Snickers", "/products/snickers.jpg", "1.00", "1.50", 50),
    ("Chips", "/products/chips.jpg", "0.75", "1.00", 75),
    ("Water", "/products/water.jpg", "0.50", "0.75", 100),
    ("Cola", "/products/water.jpg", "0.80", "1.25", 60),
    ("Sandwich", "/products/chips.jpg", "2.00", "3.00", 20),
]

SEED_USERS = {
    "Iraq": ("+9641234567890", "+9641234567891"),
    "Syria": ("+9631234567890", "+9631234567891"),
}


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the configured database."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed')
@click.option('--yes', is_flag=True, help='Confirm wiping existing data')
@with_appcontext
def seed(yes):
    """
    Load development data.

    Creates:
    - Countries Iraq and Syria, each with 1000.00 petty cash
    - Admins admin_iraq / admin_syria (password: admin123)
    - Two users per country (password: user123)
    - A starter product catalog in every country

    Seeded products are not charged to petty cash.
    """
    if not yes:
        click.echo("FAIL Refusing to wipe data without --yes")
        return

    db.create_all()
    for model in (TransactionItem, Transaction, Product, PettyCashLog, SessionToken, User, Admin, Country):
        db.session.query(model).delete()
    db.session.commit()

    for name in SEED_COUNTRIES:
        country = country_service.create_country(name, SEED_PETTY_CASH)
        click.echo(f"PASS Created country: {country.name} (ID: {country.id})")

        admin = auth_service.create_admin(f"admin_{name.lower()}", "admin123", country_id=country.id)
        click.echo(f"PASS Created admin: {admin.username}")

        for phone in SEED_USERS[name]:
            auth_service.create_user(phone, "user123", country.id)
            click.echo(f"PASS Created user: {phone}")

        for product_name, image, cost, price, stock in SEED_PRODUCTS:
            db.session.add(Product(
                country_id=country.id,
                name=product_name,
                image=image,
                purchase_cost=Decimal(cost),
                selling_price=Decimal(price),
                stock=stock,
            ))
        db.session.commit()
        click.echo(f"PASS Created {len(SEED_PRODUCTS)} products in {country.name}")

    click.echo("\nDefault Credentials (DEVELOPMENT ONLY):")
    click.echo("   admin_iraq / admin_syria -> admin123")
    click.echo("   seeded users             -> user123")


# =============================================================================
# COUNTRY MANAGEMENT COMMANDS (MULTI-TENANT)
# =============================================================================

@click.group('countries')
def countries_group():
    """Country (tenant) management commands."""


@countries_group.command('list')
@with_appcontext
def list_countries_cli():
    """List all countries with their petty cash."""
    countries = country_service.list_countries()
    if not countries:
        click.echo("No countries found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Name':<25} {'Petty Cash':<15} {'Users'}")
    click.echo("="*60)
    for country in countries:
        user_count = db.session.query(User).filter_by(country_id=country.id).count()
        click.echo(f"{country.id:<5} {country.name:<25} {str(country.petty_cash):<15} {user_count}")
    click.echo("="*60 + "\n")


@countries_group.command('create')
@click.option('--name', required=True, help='Country name (unique)')
@click.option('--petty-cash', type=Decimal, default=Decimal("0.00"), show_default=True)
@with_appcontext
def create_country_cli(name, petty_cash):
    """Create a new country (tenant)."""
    try:
        country = country_service.create_country(name, petty_cash)
    except KioskError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created country: {country.name} (ID: {country.id})")


# =============================================================================
# ACCOUNT COMMANDS
# =============================================================================

@click.group('admins')
def admins_group():
    """Admin account commands."""


@admins_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', default=None, help='Email address (enables OTP sign-in)')
@click.option('--country-id', type=int, default=None, help='Home country')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(username, email, country_id, password):
    """Create an admin account."""
    try:
        admin = auth_service.create_admin(username, password, country_id=country_id, email=email)
    except KioskError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created admin: {admin.username} (ID: {admin.id})")


@click.group('users')
def users_group():
    """User account commands."""


@users_group.command('create')
@click.option('--country-id', type=int, required=True, help='Country ID')
@click.option('--phone', prompt=True, help='Phone number')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(country_id, phone, email, password):
    """Create a kiosk user in a country."""
    try:
        user = auth_service.create_user(phone, password, country_id, email=email)
    except KioskError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created user: {user.phone_number} (ID: {user.id})")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired or revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(countries_group)
    app.cli.add_command(admins_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
