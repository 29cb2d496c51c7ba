# Overview: Service-layer operations for inventory; product creation and restock.

"""
Inventory adjustment.

Invariants:
- Product.stock never goes negative (stock changes go through ledger_service).
- Buying inventory is paid from the owning country's petty cash:
    create:  debit purchase_cost * stock
    restock: debit (new_cost or current purchase_cost) * quantity
- The stock change, the optional cost overwrite, the petty-cash debit and its
  audit row are one unit of work; a short petty cash aborts all of them.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Product
from ..errors import ProductNotFound, ScopeViolation, ValidationError
from ..validation import quantize_money
from .concurrency import atomic, lock_for_update
from .country_service import get_country
from .ledger_service import adjust_stock
from . import petty_cash_service


def list_products(country_id: int | None) -> list[Product]:
    """Products for a country, or all products when country_id is None."""
    query = db.session.query(Product)
    if country_id is not None:
        query = query.filter(Product.country_id == country_id)
    return query.order_by(Product.name.asc()).all()


def create_product(
    *,
    name: str,
    image: str,
    purchase_cost: Decimal,
    selling_price: Decimal,
    stock: int,
    country_id: int,
    admin_id: int | None = None,
) -> Product:
    """Insert a product and pay for its opening stock from petty cash."""
    if stock < 0:
        raise ValidationError("stock must be >= 0")
    if selling_price <= 0:
        raise ValidationError("sellingPrice must be > 0")

    get_country(country_id)

    def _op():
        product = Product(
            country_id=country_id,
            name=name,
            image=image,
            purchase_cost=purchase_cost,
            selling_price=selling_price,
            stock=stock,
        )
        db.session.add(product)
        db.session.flush()

        petty_cash_service.debit(
            country_id,
            quantize_money(purchase_cost * stock),
            petty_cash_service.OPERATION_INVENTORY,
            admin_id=admin_id,
            description=f"Initial stock {stock} x {name}",
        )
        return product.id

    product_id = atomic(_op)
    return db.session.get(Product, product_id)


def restock_product(
    product_id: int,
    quantity: int,
    *,
    new_cost: Decimal | None = None,
    admin_id: int | None = None,
    country_id: int | None = None,
) -> Product:
    """
    Add stock to a product, optionally overwriting its purchase cost.

    country_id, when given, is the acting admin's scope.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise ProductNotFound("Product not found")
        if country_id is not None and product.country_id != country_id:
            raise ScopeViolation("Product belongs to another country")

        unit_cost = new_cost if new_cost is not None else product.purchase_cost
        if new_cost is not None:
            product.purchase_cost = new_cost

        adjust_stock(product.id, quantity)

        petty_cash_service.debit(
            product.country_id,
            quantize_money(unit_cost * quantity),
            petty_cash_service.OPERATION_INVENTORY,
            admin_id=admin_id,
            description=f"Restock {quantity} x {product.name}",
        )
        return product.id

    restocked_id = atomic(_op)
    product = db.session.get(Product, restocked_id)
    db.session.refresh(product)
    return product
