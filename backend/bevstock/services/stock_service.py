# Overview: Stock derivation; folds the ledger (stock entries + counted sale items) into on-hand figures.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import and_, func

from ..extensions import db
from ..models import (
    ENTRY_TYPE_ADJUSTMENT,
    ENTRY_TYPE_INBOUND,
    Product,
    Sale,
    SaleItem,
    StockEntry,
)

"""
Stock Invariants (authoritative)

1) There is no stored current-stock column. On-hand is always recomputed:
       current = opening_stock + received - sold + adjustments
2) received    = SUM(inbound stock entry quantities)         (always > 0 each)
   adjustments = SUM(adjustment stock entry quantities)      (either sign)
   sold        = SUM(sale item quantities of counted sales)
3) A counted sale has is_reversed = False and reversed_sale_id IS NULL.
   - A reversed original is excluded by its flag.
   - Its compensating reversal is excluded too; its negative lines are the
     audit record of the exclusion, not a second correction.
4) The fold is order-independent and a product with no ledger rows has
   current == opening_stock.
5) Negative stock is a valid, visible state (status NEGATIVE), never an error.
"""

STATUS_OK = "OK"
STATUS_LOW = "LOW"
STATUS_NEGATIVE = "NEGATIVE"
STOCK_STATUSES = (STATUS_OK, STATUS_LOW, STATUS_NEGATIVE)


@dataclass(frozen=True)
class StockLevel:
    opening_stock: int
    received: int
    sold: int
    adjustments: int
    current_stock: int

    def to_dict(self) -> dict:
        return {
            "opening_stock": self.opening_stock,
            "received": self.received,
            "sold": self.sold,
            "adjustments": self.adjustments,
            "current_stock": self.current_stock,
        }


def derive_stock(opening_stock: int, received: int, sold: int, adjustments: int) -> StockLevel:
    return StockLevel(
        opening_stock=opening_stock,
        received=received,
        sold=sold,
        adjustments=adjustments,
        current_stock=opening_stock + received - sold + adjustments,
    )


def summarize_ledger(opening_stock: int, entries: Iterable, sale_items: Iterable) -> StockLevel:
    """
    Pure fold over one product's ledger.

    entries: objects with .type and .quantity (StockEntry rows or equivalents)
    sale_items: objects with .quantity, already restricted to counted sales
    """
    received = 0
    adjustments = 0
    for entry in entries:
        if entry.type == ENTRY_TYPE_INBOUND:
            received += entry.quantity
        elif entry.type == ENTRY_TYPE_ADJUSTMENT:
            adjustments += entry.quantity
        else:
            raise ValueError(f"Unknown stock entry type: {entry.type}")

    sold = sum(item.quantity for item in sale_items)
    return derive_stock(opening_stock, received, sold, adjustments)


def stock_status(current_stock: int, reorder_level: int | None) -> str:
    if current_stock < 0:
        return STATUS_NEGATIVE
    if reorder_level is not None and current_stock <= reorder_level:
        return STATUS_LOW
    return STATUS_OK


def counted_sale_filter():
    """SQL predicate selecting the sales that count towards 'sold'."""
    return and_(Sale.is_reversed.is_(False), Sale.reversed_sale_id.is_(None))


def get_stock_levels(product_ids: Iterable[int] | None = None) -> dict[int, StockLevel]:
    """
    Stock levels for many products with three grouped queries.

    product_ids=None means every product.
    """
    ids = list(product_ids) if product_ids is not None else None

    products_q = db.session.query(Product.id, Product.opening_stock)
    entries_q = db.session.query(
        StockEntry.product_id,
        StockEntry.type,
        func.coalesce(func.sum(StockEntry.quantity), 0),
    ).group_by(StockEntry.product_id, StockEntry.type)
    sold_q = (
        db.session.query(SaleItem.product_id, func.coalesce(func.sum(SaleItem.quantity), 0))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(counted_sale_filter())
        .group_by(SaleItem.product_id)
    )

    if ids is not None:
        if not ids:
            return {}
        products_q = products_q.filter(Product.id.in_(ids))
        entries_q = entries_q.filter(StockEntry.product_id.in_(ids))
        sold_q = sold_q.filter(SaleItem.product_id.in_(ids))

    received: dict[int, int] = {}
    adjustments: dict[int, int] = {}
    for product_id, entry_type, total in entries_q.all():
        if entry_type == ENTRY_TYPE_INBOUND:
            received[product_id] = int(total)
        elif entry_type == ENTRY_TYPE_ADJUSTMENT:
            adjustments[product_id] = int(total)
        else:
            raise ValueError(f"Unknown stock entry type: {entry_type}")

    sold = {product_id: int(total) for product_id, total in sold_q.all()}

    return {
        product_id: derive_stock(
            opening_stock,
            received.get(product_id, 0),
            sold.get(product_id, 0),
            adjustments.get(product_id, 0),
        )
        for product_id, opening_stock in products_q.all()
    }


def counted_sale_items_for(product_id: int):
    return (
        db.session.query(SaleItem)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(SaleItem.product_id == product_id, counted_sale_filter())
    )


def get_stock_level(product: Product) -> StockLevel:
    entries = db.session.query(StockEntry).filter(StockEntry.product_id == product.id).all()
    items = counted_sale_items_for(product.id).all()
    return summarize_ledger(product.opening_stock, entries, items)


def product_with_stock(product: Product, level: StockLevel) -> dict:
    data = product.to_dict()
    data.update(level.to_dict())
    data["status"] = stock_status(level.current_stock, product.reorder_level)
    return data
