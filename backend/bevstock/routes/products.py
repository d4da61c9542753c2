# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/bevstock/routes/products.py
"""
Product catalog routes.

Product rows are returned with their derived stock figures
(received, sold, adjustments, current_stock, status).
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, service_errors
from ..services import products_service, stock_entry_service
from ._helpers import json_body

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@service_errors("list products")
def list_products():
    """
    Query params:
    - category: str (optional)
    - status: OK | LOW | NEGATIVE (optional)
    """
    items = products_service.list_products(
        category=request.args.get("category") or None,
        status=request.args.get("status") or None,
    )
    return {"items": items, "count": len(items)}


@products_bp.post("")
@require_auth
@service_errors("create product")
def create_product():
    product = products_service.create_product(patch=json_body(), actor_id=g.caller.user_id)
    return {"product": product.to_dict()}, 201


@products_bp.get("/<int:product_id>")
@require_auth
@service_errors("get product")
def get_product(product_id: int):
    return {"product": products_service.get_product_detail(product_id)}


@products_bp.put("/<int:product_id>")
@require_auth
@service_errors("update product")
def update_product(product_id: int):
    product = products_service.update_product(product_id, patch=json_body(), actor_id=g.caller.user_id)
    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
@require_auth
@service_errors("delete product")
def delete_product(product_id: int):
    products_service.delete_product(product_id, actor_id=g.caller.user_id)
    return {"deleted": True, "id": product_id}


@products_bp.get("/<int:product_id>/stock-entries")
@require_auth
@service_errors("list stock entries")
def list_product_stock_entries(product_id: int):
    limit = request.args.get("limit", default=200, type=int)
    entries = stock_entry_service.list_stock_entries(product_id, limit=max(1, min(limit, 1000)))
    return {"items": [e.to_dict() for e in entries], "count": len(entries)}
