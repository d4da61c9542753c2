# Overview: Request decorators for API routes (caller context and error mapping).

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, jsonify, request

from .validation import ConflictError, ValidationError
from .services.persistence import PersistenceError
from .services.products_service import ProductNotFoundError
from .services.notes_service import NoteNotFoundError
from .services.sales_service import SaleNotFoundError


@dataclass(frozen=True)
class CallerContext:
    """Who is calling. Established upstream; we only read it."""
    user_id: str
    role: str


def require_auth(f):
    """
    Require a caller identity and establish g.caller.

    Authentication itself happens in front of this service; the gateway
    forwards the user id and role as headers (names from config).

    SECURITY: Returns 401 if:
    - the user id header is missing or blank
    - the role header is missing or not one of ALLOWED_ROLES
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        cfg = current_app.config
        user_id = (request.headers.get(cfg["AUTH_USER_HEADER"]) or "").strip()
        role = (request.headers.get(cfg["AUTH_ROLE_HEADER"]) or "").strip().lower()

        if not user_id:
            return jsonify({"error": "Authentication required"}), 401

        if role not in cfg["ALLOWED_ROLES"]:
            current_app.logger.warning("Rejected caller %s with role %r on %s", user_id, role, request.path)
            return jsonify({"error": "Role not permitted"}), 401

        g.caller = CallerContext(user_id=user_id, role=role)
        return f(*args, **kwargs)

    return decorated_function


def service_errors(action: str):
    """
    Map service-layer exceptions onto JSON error responses.

    ValidationError 400 (with details when present), not found 404,
    ConflictError 409, PersistenceError 503, anything else 500 (logged).
    """
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ValidationError as e:
                body = {"error": str(e)}
                if e.details is not None:
                    body["details"] = e.details
                return jsonify(body), 400
            except (SaleNotFoundError, ProductNotFoundError, NoteNotFoundError) as e:
                return jsonify({"error": str(e)}), 404
            except ConflictError as e:
                return jsonify({"error": str(e)}), 409
            except PersistenceError as e:
                current_app.logger.error("Persistence failure while trying to %s: %s", action, e.cause)
                return jsonify({"error": str(e)}), 503
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500
        return wrapped
    return decorator
