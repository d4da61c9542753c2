from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PAYMENT_TYPES = ("Cash", "Card", "Other")


class Sale(db.Model):
    """
    Sale header.

    Two kinds of rows live here:
    - originals: reversed_sale_id is NULL, totals positive
    - reversals: reversed_sale_id points at the original, totals negated

    The only permitted mutation is flipping is_reversed on an original from
    False to True, in the same transaction that inserts its reversal.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_reversed", "created_at", "is_reversed"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    total_units = db.Column(db.Integer, nullable=False)
    total_value_cents = db.Column(db.Integer, nullable=False)

    payment_type = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    is_reversed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    reversed_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, unique=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")

    @property
    def is_reversal(self) -> bool:
        return self.reversed_sale_id is not None

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "total_units": self.total_units,
            "total_value_cents": self.total_value_cents,
            "payment_type": self.payment_type,
            "notes": self.notes,
            "is_reversed": self.is_reversed,
            "reversed_sale_id": self.reversed_sale_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Sale line. selling_price_cents is the price at time of sale, never looked up again."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.selling_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "selling_price_cents": self.selling_price_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }
