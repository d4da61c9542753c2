# Overview: Stock entry recording (inbound goods and manual adjustments).

from __future__ import annotations

from ..extensions import db
from ..models import ENTRY_TYPE_INBOUND, Product, StockEntry
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_stock_entry,
    validate_payload,
)
from .audit_service import AuditRecord, commit_with_audit
from .persistence import run_in_transaction


STOCK_ENTRY_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "buying_price_cents", "reason", "notes"},
    required_on_create={"product_id", "type", "quantity"},
)

AUDIT_ACTIONS = {
    ENTRY_TYPE_INBOUND: "stock_received",
    "adjustment": "stock_adjusted",
}


def record_stock_entry(
    *,
    product_id,
    quantity,
    entry_type: str,
    buying_price_cents=None,
    reason: str | None = None,
    notes: str | None = None,
    actor_id: str | None = None,
) -> StockEntry:
    """
    Append one stock entry.

    Raw values are accepted so routes can hand JSON fields through; they are
    coerced with the same column-driven rules as every other payload.
    Inbound entries never carry a reason, so one supplied is dropped.
    """
    payload = {
        "product_id": product_id,
        "type": entry_type,
        "quantity": quantity,
        "buying_price_cents": buying_price_cents,
        "notes": notes,
    }
    if entry_type != ENTRY_TYPE_INBOUND:
        payload["reason"] = reason

    patch = validate_payload(model=StockEntry, payload=payload, policy=STOCK_ENTRY_POLICY, partial=False)
    enforce_rules_stock_entry(patch)

    product = db.session.get(Product, patch["product_id"])
    if product is None:
        raise ValidationError("Product not found", details={"product_id": patch["product_id"]})

    def _op():
        entry = StockEntry(created_by=actor_id, **patch)
        db.session.add(entry)
        db.session.flush()
        return entry

    def _commit(entry: StockEntry):
        commit_with_audit(lambda: AuditRecord(
            entity="stock_entry",
            entity_id=entry.id,
            action=AUDIT_ACTIONS[entry.type],
            details={
                "product_id": entry.product_id,
                "quantity": entry.quantity,
                "reason": entry.reason,
            },
            user_id=actor_id,
        ))

    return run_in_transaction(_op, commit=_commit)


def list_stock_entries(product_id: int, limit: int = 200) -> list[StockEntry]:
    return (
        db.session.query(StockEntry)
        .filter(StockEntry.product_id == product_id)
        .order_by(StockEntry.created_at.desc(), StockEntry.id.desc())
        .limit(limit)
        .all()
    )
