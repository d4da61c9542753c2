# backend/bevstock/services/products_service.py
"""
Products Service

Products are master data. Stock is never written here: opening_stock is the
baseline the ledger folds onto, and the only way to change it is an explicit
product edit (recorded in the audit trail with old and new values).

A product with ledger rows (stock entries or sale items) cannot be deleted,
so sales and entries never lose their product.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, SaleItem, StockEntry
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from .audit_service import AuditRecord, commit_with_audit
from .persistence import lock_for_update, run_in_transaction
from .stock_service import (
    STOCK_STATUSES,
    counted_sale_items_for,
    get_stock_level,
    get_stock_levels,
    product_with_stock,
)
from .stock_entry_service import list_stock_entries

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "category",
    "buying_price_cents",
    "selling_price_cents",
    "opening_stock",
    "reorder_level",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name", "category"},
)


class ProductNotFoundError(LookupError):
    pass


def apply_product_patch(p: Product, patch: dict) -> dict:
    """Apply patch; returns {field: [old, new]} for the fields that changed."""
    changes = {}
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        old = getattr(p, k)
        if old != v:
            changes[k] = [old, v]
        setattr(p, k, v)
    return changes


def _require_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return p


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product).filter(Product.name == name)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A product with this name already exists.")


def list_products(category: str | None = None, status: str | None = None) -> list[dict]:
    """Products sorted by name, each with its derived stock figures and status."""
    if status is not None and status not in STOCK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STOCK_STATUSES)}")

    q = db.session.query(Product)
    if category:
        q = q.filter(Product.category == category)
    products = q.order_by(Product.name.asc(), Product.id.asc()).all()

    levels = get_stock_levels([p.id for p in products])
    rows = [product_with_stock(p, levels[p.id]) for p in products]
    if status is not None:
        rows = [r for r in rows if r["status"] == status]
    return rows


def get_product_detail(product_id: int, recent: int = 20) -> dict:
    p = _require_product(product_id)
    level = get_stock_level(p)

    recent_sales = (
        counted_sale_items_for(p.id)
        .order_by(SaleItem.created_at.desc(), SaleItem.id.desc())
        .limit(recent)
        .all()
    )

    data = product_with_stock(p, level)
    data["recent_stock_entries"] = [e.to_dict() for e in list_stock_entries(p.id, limit=recent)]
    data["recent_sale_items"] = [i.to_dict() for i in recent_sales]
    return data


def create_product(*, patch: dict, actor_id: str | None = None) -> Product:
    """
    Create product from a raw JSON payload.

    Raises:
        ValidationError: bad or missing fields
        ConflictError: name already taken
    """
    clean = validate_payload(model=Product, payload=patch, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(clean)
    _ensure_unique_name(clean["name"])

    def _op():
        p = Product()
        apply_product_patch(p, clean)
        db.session.add(p)
        db.session.flush()
        return p

    def _commit(p: Product):
        commit_with_audit(lambda: AuditRecord(
            entity="product",
            entity_id=p.id,
            action="create",
            details={"name": p.name, "opening_stock": p.opening_stock},
            user_id=actor_id,
        ))

    return run_in_transaction(_op, commit=_commit)


def update_product(product_id: int, *, patch: dict, actor_id: str | None = None) -> Product:
    clean = validate_payload(model=Product, payload=patch, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(clean)

    p = _require_product(product_id)
    if "name" in clean:
        _ensure_unique_name(clean["name"], exclude_id=p.id)

    changes: dict = {}

    def _op():
        changes.update(apply_product_patch(p, clean))
        db.session.flush()
        return p

    def _commit(prod: Product):
        if not changes:
            db.session.commit()
            return
        commit_with_audit(AuditRecord(
            entity="product",
            entity_id=prod.id,
            action="update",
            details={"changes": changes},
            user_id=actor_id,
        ))

    return run_in_transaction(_op, commit=_commit)


def delete_product(product_id: int, *, actor_id: str | None = None) -> None:
    """
    Delete a product that has never been stocked or sold.

    The history check runs in the same transaction as the delete, under a row
    lock where the database supports one; foreign keys back it up.
    """
    p = _require_product(product_id)
    record = AuditRecord(
        entity="product",
        entity_id=p.id,
        action="delete",
        details={"name": p.name},
        user_id=actor_id,
    )

    def _op():
        locked = lock_for_update(db.session.query(Product).filter(Product.id == product_id)).first()
        if locked is None:
            raise ProductNotFoundError(f"Product {product_id} not found")

        has_entries = db.session.query(StockEntry.id).filter(StockEntry.product_id == locked.id).first()
        has_sales = db.session.query(SaleItem.id).filter(SaleItem.product_id == locked.id).first()
        if has_entries or has_sales:
            raise ConflictError("Product has stock or sales history and cannot be deleted.")

        db.session.delete(locked)
        db.session.flush()

    run_in_transaction(_op, commit=lambda _: commit_with_audit(record))
