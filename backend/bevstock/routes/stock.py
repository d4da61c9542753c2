# Overview: Flask API routes for stock entries (inbound goods, adjustments).

from flask import Blueprint, g

from ..decorators import require_auth, service_errors
from ..models import ENTRY_TYPE_ADJUSTMENT, ENTRY_TYPE_INBOUND
from ..services.stock_entry_service import record_stock_entry
from ..services.stock_service import get_stock_level, stock_status
from ._helpers import json_body

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


def _record(entry_type: str):
    data = json_body()
    entry = record_stock_entry(
        product_id=data.get("product_id"),
        quantity=data.get("quantity"),
        entry_type=entry_type,
        buying_price_cents=data.get("buying_price_cents"),
        reason=data.get("reason"),
        notes=data.get("notes"),
        actor_id=g.caller.user_id,
    )
    level = get_stock_level(entry.product)
    return {
        "entry": entry.to_dict(),
        "stock": level.to_dict(),
        "status": stock_status(level.current_stock, entry.product.reorder_level),
    }, 201


@stock_bp.post("/inbound")
@require_auth
@service_errors("record inbound stock")
def record_inbound():
    """Body: {product_id, quantity > 0, buying_price_cents?, notes?}"""
    return _record(ENTRY_TYPE_INBOUND)


@stock_bp.post("/adjustments")
@require_auth
@service_errors("record stock adjustment")
def record_adjustment():
    """Body: {product_id, quantity != 0, reason, notes?}"""
    return _record(ENTRY_TYPE_ADJUSTMENT)
