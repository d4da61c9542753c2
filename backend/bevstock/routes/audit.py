# Overview: Flask API route for reading the audit trail.

from flask import Blueprint, request

from ..decorators import require_auth, service_errors
from ..services.audit_service import list_audit_logs

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
@require_auth
@service_errors("list audit logs")
def list_audit():
    limit = request.args.get("limit", default=100, type=int)
    rows = list_audit_logs(
        entity=request.args.get("entity") or None,
        entity_id=request.args.get("entity_id") or None,
        limit=max(1, min(limit, 1000)),
    )
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}
