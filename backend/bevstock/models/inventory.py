from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PRODUCT_CATEGORIES = ("Beer", "Soda", "Water", "Alcohol", "Juice", "Other")

ENTRY_TYPE_INBOUND = "inbound"
ENTRY_TYPE_ADJUSTMENT = "adjustment"
STOCK_ENTRY_TYPES = (ENTRY_TYPE_INBOUND, ENTRY_TYPE_ADJUSTMENT)


class Product(db.Model):
    """
    Product master data.

    opening_stock is the baseline the ledger is folded onto. Stock entries and
    sale items never touch it; only an explicit product edit does. There is no
    current-stock column: on-hand is always derived (see stock_service).

    reorder_level NULL means "never flag LOW".
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_products_name"),
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, default="Other")

    # Authoritative storage in cents (frontend may only format for display)
    buying_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    opening_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "buying_price_cents": self.buying_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "opening_stock": self.opening_stock,
            "reorder_level": self.reorder_level,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockEntry(db.Model):
    """
    Append-only ledger of goods received and manual corrections.

    - inbound: quantity > 0, optional buying_price_cents, no reason
    - adjustment: quantity != 0 (either sign), reason required

    Rows are never updated or deleted.
    """
    __tablename__ = "stock_entries"
    __table_args__ = (
        db.Index("ix_stock_entries_product_created", "product_id", "created_at"),
        db.Index("ix_stock_entries_product_type", "product_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    buying_price_cents = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("stock_entries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "buying_price_cents": self.buying_price_cents,
            "reason": self.reason,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
