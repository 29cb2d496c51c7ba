from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class Transaction(db.Model):
    """
    A completed checkout on credit.

    Immutable after creation except for the settled flag.
    total = SUM(item.price * item.quantity), with price captured from the
    product's selling price at purchase time.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_user_settled", "user_id", "settled"),
        db.Index("ix_transactions_country_created", "country_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)

    total = db.Column(db.Numeric(12, 2), nullable=False)
    settled = db.Column(db.Boolean, nullable=False, default=False, index=True)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("transactions", lazy=True))
    country = db.relationship("Country", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.position",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} user_id={self.user_id} total={self.total}>"

    def to_dict(self, include_items: bool = True, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "userId": self.user_id,
            "countryId": self.country_id,
            "total": money_str(self.total),
            "settled": self.settled,
            "settledAt": to_utc_z(self.settled_at),
            "createdAt": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        if include_user:
            data["user"] = self.user.to_dict() if self.user else None
        return data


class TransactionItem(db.Model):
    """Line item, owned by its Transaction (cascade delete)."""
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transaction_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False)
    # Unit selling price at purchase time (denormalized)
    price = db.Column(db.Numeric(12, 2), nullable=False)

    transaction = db.relationship("Transaction", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "price": money_str(self.price),
            "lineTotal": money_str(self.line_total),
            "product": self.product.to_dict() if self.product else None,
        }
