"""
Sales Service - sale recording and compensating reversals

WHY: A sale's line items are the only source of "units sold". No stock entry
is written for a sale and no stock column exists to decrement, so a sale and
its lines must become visible together or not at all.

Reversal never deletes or edits history. It flips the original's
is_reversed flag and inserts a mirror sale with negated lines, in one
transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..time_utils import report_zone, resolve_window, utcnow
from ..validation import (
    ConflictError,
    ValidationError,
    blank_to_none,
    parse_sale_lines,
    validate_payment_type,
)
from .audit_service import AuditRecord, commit_with_audit
from .persistence import lock_for_update, run_in_transaction
from .stock_service import get_stock_levels


class SaleNotFoundError(ConflictError):
    """No sale with the requested id."""


class SaleConflictError(ConflictError):
    """The sale exists but is not in a state that allows the operation."""


@dataclass(frozen=True)
class IntegrityWarning:
    """A committed sale drove a product's derived stock below zero."""
    product_id: int
    product_name: str
    stock_before: int
    quantity: int
    projected_stock: int

    @property
    def message(self) -> str:
        return f"{self.product_name} will go negative ({self.projected_stock})"

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "stock_before": self.stock_before,
            "quantity": self.quantity,
            "projected_stock": self.projected_stock,
            "message": self.message,
        }


@dataclass
class SaleResult:
    sale: Sale
    items: list[SaleItem]
    warnings: list[IntegrityWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(include_items=True),
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class ReversalResult:
    original: Sale
    reversal: Sale

    def to_dict(self) -> dict:
        return {
            "original": self.original.to_dict(include_items=True),
            "reversal": self.reversal.to_dict(include_items=True),
        }


def _negative_stock_warnings(lines, products: dict[int, Product]) -> list[IntegrityWarning]:
    """
    Advisory check against stock as it stood before the sale.

    Quantities accumulate per product across lines, so two lines of the same
    product are judged together. One warning per product (the first line that
    crosses zero).
    """
    before = get_stock_levels(products.keys())
    running: dict[int, int] = {}
    warnings: list[IntegrityWarning] = []
    warned: set[int] = set()

    for line in lines:
        pid = line.product_id
        stock_before = before[pid].current_stock
        running[pid] = running.get(pid, 0) + line.quantity
        projected = stock_before - running[pid]
        if projected < 0 and pid not in warned:
            warned.add(pid)
            warnings.append(IntegrityWarning(
                product_id=pid,
                product_name=products[pid].name,
                stock_before=stock_before,
                quantity=running[pid],
                projected_stock=projected,
            ))
    return warnings


def record_sale(*, lines, payment_type, notes=None, actor_id: str | None = None) -> SaleResult:
    """
    Validate and commit a multi-line sale.

    Every line is checked before anything is written; a ValidationError lists
    all offending lines as {"index", "errors"}. An omitted selling price takes
    the product's current price, which is then frozen on the line.
    """
    parsed, problems = parse_sale_lines(lines)
    validate_payment_type(payment_type)

    wanted = {line.product_id for line in parsed if line is not None}
    products = {}
    if wanted:
        products = {
            p.id: p for p in db.session.query(Product).filter(Product.id.in_(wanted)).all()
        }

    for index, line in enumerate(parsed):
        if line is not None and line.product_id not in products:
            problems.append({"index": index, "errors": ["product not found"]})

    if problems:
        problems.sort(key=lambda p: p["index"])
        raise ValidationError("Invalid sale lines", details={"lines": problems})

    priced = [
        (line, line.selling_price_cents if line.selling_price_cents is not None
         else products[line.product_id].selling_price_cents)
        for line in parsed
    ]
    total_units = sum(line.quantity for line, _ in priced)
    total_value_cents = sum(line.quantity * price for line, price in priced)

    warnings = _negative_stock_warnings(parsed, products)

    def _op():
        sale = Sale(
            total_units=total_units,
            total_value_cents=total_value_cents,
            payment_type=payment_type,
            notes=blank_to_none(notes),
            is_reversed=False,
            created_by=actor_id,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        items = [
            SaleItem(
                sale_id=sale.id,
                product_id=line.product_id,
                quantity=line.quantity,
                selling_price_cents=price,
                created_at=sale.created_at,
            )
            for line, price in priced
        ]
        db.session.add_all(items)
        db.session.flush()
        return SaleResult(sale=sale, items=items, warnings=warnings)

    def _commit(result: SaleResult):
        commit_with_audit(lambda: AuditRecord(
            entity="sale",
            entity_id=result.sale.id,
            action="sale_created",
            details={
                "total_units": total_units,
                "total_value_cents": total_value_cents,
                "line_count": len(priced),
                "payment_type": payment_type,
            },
            user_id=actor_id,
        ))

    result = run_in_transaction(_op, commit=_commit)

    for w in result.warnings:
        current_app.logger.info("Sale %s: %s", result.sale.id, w.message)

    return result


def get_sale(sale_id: int) -> Sale:
    sale = (
        db.session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(Sale.id == sale_id)
        .first()
    )
    if sale is None:
        raise SaleNotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales(
    *,
    date_filter: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
    now: datetime | None = None,
) -> list[Sale]:
    """All sales (originals and reversals) newest first, items attached."""
    try:
        lo, hi = resolve_window(
            date_filter=date_filter, start=start, end=end,
            now_utc=now or utcnow(), tz=report_zone(),
        )
    except ValueError as e:
        raise ValidationError(str(e))

    query = db.session.query(Sale).options(selectinload(Sale.items))
    if lo is not None:
        query = query.filter(Sale.created_at >= lo)
    if hi is not None:
        query = query.filter(Sale.created_at < hi)
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def reverse_sale(sale_id: int, *, actor_id: str | None = None) -> ReversalResult:
    """
    Reverse a sale with a compensating sale.

    State machine: active -> reversed, one way. A reversal sale is never
    itself reversible. The flag flip is a compare-and-set, so two concurrent
    reversals cannot both succeed; the unique reversed_sale_id backs this up
    at the schema level.
    """
    def _op():
        original = lock_for_update(db.session.query(Sale).filter(Sale.id == sale_id)).first()
        if original is None:
            raise SaleNotFoundError(f"Sale {sale_id} not found")
        if original.is_reversal:
            raise SaleConflictError(f"Sale {sale_id} is a reversal and cannot be reversed")
        if original.is_reversed:
            raise SaleConflictError(f"Sale {sale_id} is already reversed")

        lines = list(original.items)

        flipped = (
            db.session.query(Sale)
            .filter(Sale.id == original.id, Sale.is_reversed.is_(False))
            .update({Sale.is_reversed: True}, synchronize_session="fetch")
        )
        if flipped != 1:
            raise SaleConflictError(f"Sale {sale_id} is already reversed")

        reversal = Sale(
            total_units=-original.total_units,
            total_value_cents=-original.total_value_cents,
            payment_type=original.payment_type,
            notes=f"Reversal of sale {original.id}",
            is_reversed=False,
            reversed_sale_id=original.id,
            created_by=actor_id,
            created_at=utcnow(),
        )
        db.session.add(reversal)
        try:
            db.session.flush()
        except IntegrityError:
            raise SaleConflictError(f"Sale {sale_id} is already reversed")

        db.session.add_all([
            SaleItem(
                sale_id=reversal.id,
                product_id=line.product_id,
                quantity=-line.quantity,
                selling_price_cents=line.selling_price_cents,
                created_at=reversal.created_at,
            )
            for line in lines
        ])
        db.session.flush()
        return ReversalResult(original=original, reversal=reversal)

    def _commit(result: ReversalResult):
        commit_with_audit(lambda: AuditRecord(
            entity="sale",
            entity_id=result.original.id,
            action="sale_reversed",
            details={
                "original_sale_id": result.original.id,
                "reversal_sale_id": result.reversal.id,
                "total_units": result.original.total_units,
                "total_value_cents": result.original.total_value_cents,
            },
            user_id=actor_id,
        ))

    result = run_in_transaction(_op, commit=_commit)
    current_app.logger.info("Sale %s reversed by sale %s", result.original.id, result.reversal.id)
    return result
