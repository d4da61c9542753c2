# Overview: Dashboard aggregations derived from the same ledger as stock math.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..time_utils import local_date, local_day_bounds, report_zone, utcnow
from ..validation import ValidationError
from .stock_service import (
    STATUS_OK,
    counted_sale_filter,
    get_stock_levels,
    product_with_stock,
    stock_status,
)

MAX_REPORT_DAYS = 366
MAX_TOP_SELLERS = 100


def _check_days(days) -> int:
    if isinstance(days, bool) or not isinstance(days, int):
        raise ValidationError("days must be an integer")
    if days < 1 or days > MAX_REPORT_DAYS:
        raise ValidationError(f"days must be between 1 and {MAX_REPORT_DAYS}")
    return days


def _counted_totals(start: datetime, end: datetime) -> tuple[int, int]:
    units, value = (
        db.session.query(
            func.coalesce(func.sum(Sale.total_units), 0),
            func.coalesce(func.sum(Sale.total_value_cents), 0),
        )
        .filter(counted_sale_filter(), Sale.created_at >= start, Sale.created_at < end)
        .one()
    )
    return int(units), int(value)


def dashboard_summary(now: datetime | None = None) -> dict:
    """
    Headline KPIs.

    total_stock_value_cents is SUM(current_stock * buying_price_cents) and goes
    negative when negative-stock products outweigh the rest.
    """
    now = now or utcnow()
    tz = report_zone()

    products = db.session.query(Product).all()
    levels = get_stock_levels()

    total_units = 0
    total_value = 0
    for product in products:
        current = levels[product.id].current_stock
        total_units += current
        total_value += current * product.buying_price_cents

    start, end = local_day_bounds(local_date(now, tz), tz)
    today_units, today_value = _counted_totals(start, end)

    return {
        "total_products": len(products),
        "total_units_in_stock": total_units,
        "total_stock_value_cents": total_value,
        "today_units_sold": today_units,
        "today_sales_value_cents": today_value,
    }


def daily_sales(days: int, now: datetime | None = None) -> list[dict]:
    """
    One row per local calendar day, oldest first, today last.

    Days without counted sales are present with zeros.
    """
    days = _check_days(days)
    now = now or utcnow()
    tz = report_zone()

    today = local_date(now, tz)
    first_day = today - timedelta(days=days - 1)
    buckets = {first_day + timedelta(days=i): [0, 0] for i in range(days)}

    window_start, _ = local_day_bounds(first_day, tz)
    _, window_end = local_day_bounds(today, tz)

    rows = (
        db.session.query(Sale.created_at, Sale.total_units, Sale.total_value_cents)
        .filter(counted_sale_filter(), Sale.created_at >= window_start, Sale.created_at < window_end)
        .all()
    )
    for created_at, units, value in rows:
        bucket = buckets.get(local_date(created_at, tz))
        if bucket is None:
            continue
        bucket[0] += units
        bucket[1] += value

    return [
        {"date": day.isoformat(), "units_sold": units, "sales_value_cents": value}
        for day, (units, value) in sorted(buckets.items())
    ]


def top_sellers(days: int, limit: int, now: datetime | None = None) -> list[dict]:
    """
    Best sellers by units over counted sales with created_at >= now - days.

    Tie-break: products are first collected in the order their earliest item
    in the window appears (created_at, then id) and the sort by units is
    stable, so among equal totals the product seen first ranks higher.
    """
    days = _check_days(days)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1 or limit > MAX_TOP_SELLERS:
        raise ValidationError(f"limit must be between 1 and {MAX_TOP_SELLERS}")
    now = now or utcnow()
    since = now - timedelta(days=days)

    rows = (
        db.session.query(SaleItem.product_id, SaleItem.quantity, SaleItem.selling_price_cents)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(counted_sale_filter(), Sale.created_at >= since, Sale.created_at <= now)
        .order_by(SaleItem.created_at.asc(), SaleItem.id.asc())
        .all()
    )

    totals: dict[int, list[int]] = {}
    for product_id, quantity, price in rows:
        agg = totals.setdefault(product_id, [0, 0])
        agg[0] += quantity
        agg[1] += quantity * price

    # sorted(reverse=True) keeps equal keys in insertion order
    ranked = sorted(totals.items(), key=lambda kv: kv[1][0], reverse=True)[:limit]

    names = {}
    if ranked:
        names = {
            p.id: p for p in db.session.query(Product).filter(Product.id.in_([pid for pid, _ in ranked])).all()
        }

    return [
        {
            "product_id": pid,
            "name": names[pid].name if pid in names else None,
            "category": names[pid].category if pid in names else None,
            "units_sold": units,
            "sales_value_cents": value,
        }
        for pid, (units, value) in ranked
    ]


def products_with_stock() -> list[dict]:
    products = db.session.query(Product).order_by(Product.name.asc()).all()
    levels = get_stock_levels()
    return [product_with_stock(p, levels[p.id]) for p in products]


def low_stock() -> list[dict]:
    """Products flagged NEGATIVE or LOW, lowest stock first."""
    flagged = [
        row for row in products_with_stock()
        if stock_status(row["current_stock"], row["reorder_level"]) != STATUS_OK
    ]
    flagged.sort(key=lambda row: (row["current_stock"], row["name"]))
    return flagged


def dashboard(now: datetime | None = None) -> dict:
    now = now or utcnow()
    cfg = current_app.config
    return {
        "summary": dashboard_summary(now),
        "daily_sales": daily_sales(cfg.get("DASHBOARD_TREND_DAYS", 7), now),
        "top_sellers": top_sellers(cfg.get("TOP_SELLERS_DAYS", 7), cfg.get("TOP_SELLERS_LIMIT", 5), now),
        "low_stock": low_stock(),
        "products": products_with_stock(),
    }
