# Overview: Inventory movement timeline merging stock entries and counted sale items.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Product, Sale, SaleItem, StockEntry
from ..time_utils import report_zone, resolve_window, to_utc_z, utcnow
from ..validation import ValidationError
from .stock_service import counted_sale_filter

MOVEMENT_SALE = "sale"


def _entry_row(entry: StockEntry, name: str) -> dict:
    return {
        "id": f"entry-{entry.id}",
        "type": entry.type,
        "product_id": entry.product_id,
        "product_name": name,
        "quantity": entry.quantity,
        "buying_price_cents": entry.buying_price_cents,
        "selling_price_cents": None,
        "reason": entry.reason,
        "notes": entry.notes,
        "sale_id": None,
        "created_by": entry.created_by,
        "created_at": entry.created_at,
    }


def _sale_row(item: SaleItem, sale: Sale, name: str) -> dict:
    return {
        "id": f"sale-item-{item.id}",
        "type": MOVEMENT_SALE,
        # sold units leave the shelf
        "quantity": -item.quantity,
        "product_id": item.product_id,
        "product_name": name,
        "buying_price_cents": None,
        "reason": None,
        "notes": sale.notes,
        "sale_id": sale.id,
        "selling_price_cents": item.selling_price_cents,
        "created_by": sale.created_by,
        "created_at": item.created_at,
    }


def inventory_history(
    *,
    product_id: int | None = None,
    date_filter: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 500,
    now: datetime | None = None,
) -> list[dict]:
    """
    Every stock movement newest first: inbound and adjustment entries plus
    items of counted sales (quantity shown as the negative stock effect).
    """
    try:
        lo, hi = resolve_window(
            date_filter=date_filter, start=start, end=end,
            now_utc=now or utcnow(), tz=report_zone(),
        )
    except ValueError as e:
        raise ValidationError(str(e))

    entries_q = db.session.query(StockEntry, Product.name).join(Product, Product.id == StockEntry.product_id)
    sales_q = (
        db.session.query(SaleItem, Sale, Product.name)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .join(Product, Product.id == SaleItem.product_id)
        .filter(counted_sale_filter())
    )

    if product_id is not None:
        entries_q = entries_q.filter(StockEntry.product_id == product_id)
        sales_q = sales_q.filter(SaleItem.product_id == product_id)
    if lo is not None:
        entries_q = entries_q.filter(StockEntry.created_at >= lo)
        sales_q = sales_q.filter(SaleItem.created_at >= lo)
    if hi is not None:
        entries_q = entries_q.filter(StockEntry.created_at < hi)
        sales_q = sales_q.filter(SaleItem.created_at < hi)

    entries_q = entries_q.order_by(StockEntry.created_at.desc(), StockEntry.id.desc()).limit(limit)
    sales_q = sales_q.order_by(SaleItem.created_at.desc(), SaleItem.id.desc()).limit(limit)

    rows = [_entry_row(e, name) for e, name in entries_q.all()]
    rows += [_sale_row(i, s, name) for i, s, name in sales_q.all()]
    rows.sort(key=lambda r: r["created_at"], reverse=True)

    out = rows[:limit]
    for r in out:
        r["created_at"] = to_utc_z(r["created_at"])
    return out
