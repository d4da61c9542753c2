# backend/bevstock/config.py
from __future__ import annotations
import os


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bevstock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///bevstock.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Calendar days ("today", daily trend buckets) are cut in this zone.
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE", "UTC")

    # best_effort: audit rows are written after the primary commit and a
    # failure is logged and ignored. atomic: audit rows share the primary
    # transaction and a failure rolls the whole operation back.
    AUDIT_MODE = os.environ.get("AUDIT_MODE", "best_effort")

    DASHBOARD_TREND_DAYS = int(os.environ.get("DASHBOARD_TREND_DAYS", "7"))
    TOP_SELLERS_DAYS = int(os.environ.get("TOP_SELLERS_DAYS", "7"))
    TOP_SELLERS_LIMIT = int(os.environ.get("TOP_SELLERS_LIMIT", "5"))

    # Identity is established upstream; these headers carry it to us.
    AUTH_USER_HEADER = os.environ.get("AUTH_USER_HEADER", "X-User-Id")
    AUTH_ROLE_HEADER = os.environ.get("AUTH_ROLE_HEADER", "X-User-Role")
    ALLOWED_ROLES = _csv(os.environ.get("ALLOWED_ROLES", "owner,manager"))

    CORS_ALLOWED_ORIGINS = _csv(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))
