# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/bevstock/routes/sales.py
"""
Sales API routes.

A sale is recorded in one request (header + lines). Reversal is the only
follow-up operation; sales are never edited or deleted.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, service_errors
from ..services import sales_service
from ._helpers import datetime_arg, json_body

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@service_errors("list sales")
def list_sales_route():
    """
    Query params:
    - filter: named range (today, yesterday, 7days, this_week, ..., all)
    - start / end: ISO-8601 bounds, used when filter is absent
    - limit: int (optional)
    """
    sales = sales_service.list_sales(
        date_filter=request.args.get("filter") or None,
        start=datetime_arg("start"),
        end=datetime_arg("end"),
        limit=request.args.get("limit", type=int),
    )
    return {"items": [s.to_dict(include_items=True) for s in sales], "count": len(sales)}


@sales_bp.post("")
@require_auth
@service_errors("record sale")
def record_sale_route():
    """
    Body: {lines: [{product_id, quantity, selling_price_cents?}], payment_type, notes?}

    201 with the committed sale and any negative-stock warnings.
    """
    data = json_body()
    result = sales_service.record_sale(
        lines=data.get("lines"),
        payment_type=data.get("payment_type"),
        notes=data.get("notes"),
        actor_id=g.caller.user_id,
    )
    return result.to_dict(), 201


@sales_bp.get("/<int:sale_id>")
@require_auth
@service_errors("get sale")
def get_sale_route(sale_id: int):
    return {"sale": sales_service.get_sale(sale_id).to_dict(include_items=True)}


@sales_bp.post("/<int:sale_id>/reverse")
@require_auth
@service_errors("reverse sale")
def reverse_sale_route(sale_id: int):
    result = sales_service.reverse_sale(sale_id, actor_id=g.caller.user_id)
    return result.to_dict(), 201
