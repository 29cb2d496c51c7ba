from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class Product(db.Model):
    """
    Product master data and on-hand stock.

    Products are country-scoped. stock is a mutable counter that must never
    go negative; all changes go through ledger_service.adjust_stock, a single
    conditional UPDATE, never a read-modify-write in Python.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_country_name", "country_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    image = db.Column(db.String(1024), nullable=False)

    purchase_cost = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    country = db.relationship("Country", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} country_id={self.country_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "countryId": self.country_id,
            "name": self.name,
            "image": self.image,
            "purchaseCost": money_str(self.purchase_cost),
            "sellingPrice": money_str(self.selling_price),
            "stock": self.stock,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
