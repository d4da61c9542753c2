from __future__ import annotations
from datetime import datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import parse_iso_datetime
from .models import PAYMENT_TYPES, PRODUCT_CATEGORIES, ENTRY_TYPE_ADJUSTMENT, ENTRY_TYPE_INBOUND


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999
MAX_LINE_QUANTITY = 100_000


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


@dataclass(frozen=True)
class SaleLineInput:
    product_id: int
    quantity: int
    selling_price_cents: int | None


def blank_to_none(value: Any) -> str | None:
    """Optional free text: stripped, with blank collapsing to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(name: str, value: Any) -> int:
    # bool is an int subclass; reject it
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)):
            if col.nullable:
                val = blank_to_none(val)
            elif isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_price(name: str, value: int | None) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{name} must be >= 0")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{name} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}")

    _check_price("buying_price_cents", patch.get("buying_price_cents"))
    _check_price("selling_price_cents", patch.get("selling_price_cents"))

    if patch.get("opening_stock") is not None and patch["opening_stock"] < 0:
        raise ValidationError("opening_stock must be >= 0")

    if patch.get("reorder_level") is not None and patch["reorder_level"] < 0:
        raise ValidationError("reorder_level must be >= 0")


def enforce_rules_stock_entry(patch: dict) -> None:
    entry_type = patch.get("type")
    quantity = patch.get("quantity")

    if entry_type == ENTRY_TYPE_INBOUND:
        # INBOUND requires qty > 0; reason is meaningless here
        if quantity is None or quantity <= 0:
            raise ValidationError("quantity must be > 0 for inbound stock")
        _check_price("buying_price_cents", patch.get("buying_price_cents"))
        return

    if entry_type == ENTRY_TYPE_ADJUSTMENT:
        # ADJUSTMENT requires qty != 0 and a reason, forbids a buying price
        if quantity is None or quantity == 0:
            raise ValidationError("quantity must be non-zero for an adjustment")
        reason = patch.get("reason")
        if reason is None or str(reason).strip() == "":
            raise ValidationError("reason is required for an adjustment")
        if patch.get("buying_price_cents") is not None:
            raise ValidationError("buying_price_cents must be omitted for an adjustment")
        return

    raise ValidationError(f"type must be {ENTRY_TYPE_INBOUND} or {ENTRY_TYPE_ADJUSTMENT}")


def validate_payment_type(value: Any) -> str:
    if value not in PAYMENT_TYPES:
        raise ValidationError(f"payment_type must be one of: {', '.join(PAYMENT_TYPES)}")
    return value


def parse_sale_lines(raw_lines: Any) -> tuple[list[SaleLineInput | None], list[dict]]:
    """
    Shape-check sale lines without touching the database.

    Returns (parsed, problems). parsed keeps input order and holds None for
    lines that failed; problems is a list of {"index", "errors"} dicts.
    An empty or non-list input is rejected outright.
    """
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("A sale needs at least one line")

    parsed: list[SaleLineInput | None] = []
    problems: list[dict] = []

    for index, raw in enumerate(raw_lines):
        errors: list[str] = []
        if not isinstance(raw, dict):
            parsed.append(None)
            problems.append({"index": index, "errors": ["line must be an object"]})
            continue

        product_id = None
        if raw.get("product_id") in (None, ""):
            errors.append("product_id is required")
        else:
            try:
                product_id = _coerce_int("product_id", raw["product_id"])
            except ValidationError as e:
                errors.append(str(e))

        quantity = None
        if raw.get("quantity") is None:
            errors.append("quantity is required")
        else:
            try:
                quantity = _coerce_int("quantity", raw["quantity"])
            except ValidationError as e:
                errors.append(str(e))
            else:
                if quantity <= 0:
                    errors.append("quantity must be > 0")
                elif quantity > MAX_LINE_QUANTITY:
                    errors.append(f"quantity cannot exceed {MAX_LINE_QUANTITY}")

        price = None
        if raw.get("selling_price_cents") is not None:
            try:
                price = _coerce_int("selling_price_cents", raw["selling_price_cents"])
                _check_price("selling_price_cents", price)
            except ValidationError as e:
                errors.append(str(e))

        if errors:
            parsed.append(None)
            problems.append({"index": index, "errors": errors})
        else:
            parsed.append(SaleLineInput(product_id=product_id, quantity=quantity, selling_price_cents=price))

    return parsed, problems
