# Overview: Flask API route for the inventory movement timeline.

from flask import Blueprint, request

from ..decorators import require_auth, service_errors
from ..services.history_service import inventory_history
from ._helpers import datetime_arg

history_bp = Blueprint("history", __name__, url_prefix="/api/history")


@history_bp.get("")
@require_auth
@service_errors("load inventory history")
def history():
    """
    Query params:
    - product_id: int (optional)
    - filter: named range (optional)
    - start / end: ISO-8601 bounds (optional)
    - limit: int (default 500, max 2000)
    """
    limit = request.args.get("limit", default=500, type=int)
    items = inventory_history(
        product_id=request.args.get("product_id", type=int),
        date_filter=request.args.get("filter") or None,
        start=datetime_arg("start"),
        end=datetime_arg("end"),
        limit=max(1, min(limit, 2000)),
    )
    return {"items": items, "count": len(items)}
