# Overview: Service-layer operations for checkout on credit.

"""
Transaction recorder.

A checkout turns a Basket into a Transaction:
1. Validate the buyer, each product (exists, same country) and stock.
2. Price every line from Product.selling_price. Client-supplied prices are
   never trusted.
3. In one unit of work: insert the Transaction and its items, decrement each
   product's stock with a guarded conditional UPDATE, and add the total to
   the buyer's balance.

The pre-check in step 1 gives a precise error message; the guarded
decrement in step 3 is what actually prevents overselling. If a concurrent
checkout consumed the stock in between, the decrement matches no row and the
whole unit rolls back with InsufficientStock.

After commit a payment reminder is dispatched fire-and-forget.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Transaction, TransactionItem, User
from ..errors import (
    KioskError,
    InsufficientStock,
    ProductNotFound,
    ScopeViolation,
    TransactionFailed,
    UserNotFound,
    ValidationError,
)
from ..validation import parse_int, quantize_money
from .concurrency import atomic
from .country_service import get_or_create_default_country
from .ledger_service import adjust_balance, adjust_stock
from . import notification_service


@dataclass(frozen=True)
class BasketLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class Basket:
    """A request-scoped, unconfirmed selection of products."""
    lines: tuple[BasketLine, ...]

    @classmethod
    def from_payload(cls, items) -> "Basket":
        """
        Build a basket from [{productId, quantity, price?}, ...].

        price is accepted for client compatibility and ignored.
        """
        if not items or not isinstance(items, list):
            raise ValidationError("Invalid or missing items")

        lines = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise ValidationError(f"items[{index}] must be an object")
            product_id = parse_int(item.get("productId"), f"items[{index}].productId", minimum=1)
            quantity = parse_int(item.get("quantity"), f"items[{index}].quantity", minimum=1)
            lines.append(BasketLine(product_id=product_id, quantity=quantity))
        return cls(lines=tuple(lines))

    def quantities(self) -> dict[int, int]:
        """Requested quantity per product, in first-seen order."""
        totals: dict[int, int] = {}
        for line in self.lines:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return totals


def resolve_buyer_id(ctx, requested_user_id=None) -> int:
    """
    Users always buy for themselves. Admins must name the user they record
    the purchase for; country scope is checked by record_transaction.
    """
    if ctx.role == "admin":
        if requested_user_id is None:
            raise ValidationError("userId is required when an admin records a transaction")
        return parse_int(requested_user_id, "userId", minimum=1)

    if requested_user_id is not None and str(requested_user_id) != str(ctx.principal.id):
        raise ScopeViolation("Users can only record their own transactions")
    return ctx.principal.id


def _insufficient(product: Product, requested: int, available: int | None = None) -> InsufficientStock:
    return InsufficientStock(
        f"Insufficient stock for product: {product.name}",
        details={
            "productId": product.id,
            "requested": requested,
            "available": product.stock if available is None else available,
        },
    )


def record_transaction(
    buyer_id: int,
    basket: Basket,
    *,
    scope_country_id: int | None = None,
) -> Transaction:
    """
    Record a checkout atomically.

    scope_country_id is the acting admin's country; when set the buyer must
    belong to it.
    """
    if not basket.lines:
        raise ValidationError("Invalid or missing items")

    def _op():
        user = db.session.get(User, buyer_id)
        if user is None:
            raise UserNotFound("User not found. Please log in again.")

        if user.country_id is None:
            user.country_id = get_or_create_default_country().id

        if scope_country_id is not None and user.country_id != scope_country_id:
            raise ScopeViolation("You can only record transactions for users in your country")

        requested = basket.quantities()
        products: dict[int, Product] = {}
        for product_id, quantity in requested.items():
            product = db.session.get(Product, product_id)
            if product is None or product.country_id != user.country_id:
                raise ProductNotFound(f"Product with ID {product_id} not found")
            if product.stock < quantity:
                raise _insufficient(product, quantity)
            products[product_id] = product

        transaction = Transaction(user_id=user.id, country_id=user.country_id, settled=False)
        total = Decimal("0.00")
        for position, line in enumerate(basket.lines):
            price = products[line.product_id].selling_price
            total += price * line.quantity
            transaction.items.append(TransactionItem(
                product_id=line.product_id,
                position=position,
                quantity=line.quantity,
                price=price,
            ))
        transaction.total = quantize_money(total)

        db.session.add(transaction)
        db.session.flush()

        for product_id, quantity in requested.items():
            if not adjust_stock(product_id, -quantity):
                db.session.refresh(products[product_id])
                raise _insufficient(products[product_id], quantity)

        adjust_balance(user.id, transaction.total)
        return transaction.id

    try:
        transaction_id = atomic(_op)
    except KioskError:
        raise
    except SQLAlchemyError as exc:
        current_app.logger.exception("Checkout for user %s rolled back", buyer_id)
        raise TransactionFailed("Transaction failed; no changes were made") from exc

    transaction = db.session.get(Transaction, transaction_id)
    _notify_purchase(transaction)
    return transaction


def _notify_purchase(transaction: Transaction) -> None:
    user = transaction.user
    if not user or not user.email:
        return

    lines = [(item.product.name, item.quantity, item.price) for item in transaction.items]
    notification_service.dispatch(
        notification_service.send_payment_reminder,
        user.email,
        transaction.total,
        user.balance,
        lines,
    )


def list_transactions(ctx) -> list[Transaction]:
    """Admins see their country's transactions (all when unscoped); users their own."""
    query = db.session.query(Transaction)
    if ctx.role == "admin":
        if ctx.country_id is not None:
            query = query.filter(Transaction.country_id == ctx.country_id)
    else:
        query = query.filter(Transaction.user_id == ctx.principal.id)
        if ctx.country_id is not None:
            query = query.filter(Transaction.country_id == ctx.country_id)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()
