# Overview: Service-layer operations for the audit trail.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditLog
from .persistence import PersistenceError

"""
Audit trail rules

- Rows are append-only; nothing here updates or deletes them.
- AUDIT_MODE=atomic: audit rows join the primary transaction, so a failed
  audit write also discards the primary write.
- AUDIT_MODE=best_effort: the primary write commits first; each audit row
  then commits on its own and a failure is logged and dropped.
"""

AUDIT_MODES = ("best_effort", "atomic")


@dataclass(frozen=True)
class AuditRecord:
    entity: str
    entity_id: Any
    action: str
    details: dict = field(default_factory=dict)
    user_id: str | None = None

    def to_model(self) -> AuditLog:
        return AuditLog(
            entity=self.entity,
            entity_id=str(self.entity_id),
            action=self.action,
            details=self.details or None,
            user_id=self.user_id,
        )


def audit_mode() -> str:
    mode = current_app.config.get("AUDIT_MODE", "best_effort")
    if mode not in AUDIT_MODES:
        raise ValueError(f"AUDIT_MODE must be one of: {', '.join(AUDIT_MODES)}")
    return mode


def commit_with_audit(*records) -> None:
    """
    Commit the pending primary write together with its audit records.

    Records may be AuditRecord instances or zero-arg callables returning one,
    so callers can reference ids that only exist after a flush.
    """
    if audit_mode() == "atomic":
        try:
            db.session.flush()
            for rec in records:
                db.session.add(_resolve(rec).to_model())
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(cause=exc) from exc
        return

    # Records are resolved while the primary write is still pending, so
    # nothing after its commit can fail the operation.
    try:
        db.session.flush()
        resolved_records = [_resolve(rec) for rec in records]
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(cause=exc) from exc

    for resolved in resolved_records:
        try:
            db.session.add(resolved.to_model())
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.warning(
                "Audit write failed for %s %s (%s)",
                resolved.entity, resolved.entity_id, resolved.action,
                exc_info=True,
            )


def _resolve(rec) -> AuditRecord:
    return rec() if callable(rec) else rec


def list_audit_logs(entity: str | None = None, entity_id: Any = None, limit: int = 100) -> list[AuditLog]:
    query = db.session.query(AuditLog)
    if entity:
        query = query.filter(AuditLog.entity == entity)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == str(entity_id))
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
