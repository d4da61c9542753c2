# Overview: Flask API routes for dashboard KPIs and trends.

from flask import Blueprint, current_app, request

from ..decorators import require_auth, service_errors
from ..services import reporting_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
@service_errors("build dashboard")
def dashboard():
    return reporting_service.dashboard()


@dashboard_bp.get("/summary")
@require_auth
@service_errors("build dashboard summary")
def summary():
    return reporting_service.dashboard_summary()


@dashboard_bp.get("/daily-sales")
@require_auth
@service_errors("build daily sales")
def daily_sales():
    days = request.args.get("days", default=current_app.config["DASHBOARD_TREND_DAYS"], type=int)
    return {"items": reporting_service.daily_sales(days)}


@dashboard_bp.get("/top-sellers")
@require_auth
@service_errors("build top sellers")
def top_sellers():
    cfg = current_app.config
    days = request.args.get("days", default=cfg["TOP_SELLERS_DAYS"], type=int)
    limit = request.args.get("limit", default=cfg["TOP_SELLERS_LIMIT"], type=int)
    return {"items": reporting_service.top_sellers(days, limit)}


@dashboard_bp.get("/low-stock")
@require_auth
@service_errors("build low stock list")
def low_stock():
    items = reporting_service.low_stock()
    return {"items": items, "count": len(items)}
