"""Audit modes: best-effort versus atomic."""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from bevstock.extensions import db
from bevstock.models import AuditLog, Note, Product
from bevstock.services import products_service
from bevstock.services.audit_service import AuditRecord, commit_with_audit, list_audit_logs
from bevstock.services.persistence import PersistenceError


def _fail_on_call(monkeypatch, call_number: int):
    """Make the Nth session commit raise; the others go through."""
    session = db.session()
    real_commit = session.commit
    calls = {"n": 0}

    def commit():
        calls["n"] += 1
        if calls["n"] == call_number:
            raise OperationalError("COMMIT", {}, Exception("audit table locked"))
        return real_commit()

    monkeypatch.setattr(session, "commit", commit)


def test_best_effort_keeps_primary_write_when_audit_fails(app, db_session, monkeypatch, caplog):
    monkeypatch.setitem(app.config, "AUDIT_MODE", "best_effort")
    _fail_on_call(monkeypatch, 2)

    with caplog.at_level(logging.WARNING):
        product = products_service.create_product(patch={"name": "Stout", "category": "Beer"}, actor_id="u1")
    monkeypatch.undo()

    assert db.session.get(Product, product.id) is not None
    assert db.session.query(AuditLog).count() == 0
    assert "Audit write failed" in caplog.text


def test_atomic_rolls_back_primary_write_when_commit_fails(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "AUDIT_MODE", "atomic")
    _fail_on_call(monkeypatch, 1)

    with pytest.raises(PersistenceError):
        products_service.create_product(patch={"name": "Stout", "category": "Beer"}, actor_id="u1")
    monkeypatch.undo()

    assert db.session.query(Product).count() == 0
    assert db.session.query(AuditLog).count() == 0


def test_atomic_writes_audit_with_primary(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "AUDIT_MODE", "atomic")
    product = products_service.create_product(patch={"name": "Lager", "category": "Beer"}, actor_id="u9")

    row = db.session.query(AuditLog).one()
    assert (row.entity, row.entity_id, row.action, row.user_id) == ("product", str(product.id), "create", "u9")


def test_unknown_mode_rejected(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "AUDIT_MODE", "sometimes")
    with pytest.raises(ValueError):
        commit_with_audit(AuditRecord(entity="x", entity_id=1, action="create"))


def test_list_filters(db_session):
    commit_with_audit(
        AuditRecord(entity="sale", entity_id=1, action="sale_created"),
        AuditRecord(entity="product", entity_id=1, action="create"),
        AuditRecord(entity="sale", entity_id=2, action="sale_created"),
    )
    assert len(list_audit_logs()) == 3
    assert {r.entity_id for r in list_audit_logs(entity="sale")} == {"1", "2"}
    assert [r.entity_id for r in list_audit_logs(entity="sale", entity_id=2)] == ["2"]
    assert len(list_audit_logs(limit=1)) == 1


def test_best_effort_resolves_records_before_primary_commit(app, db_session, monkeypatch):
    """Once the primary commit lands, nothing left can turn it into an error."""
    monkeypatch.setitem(app.config, "AUDIT_MODE", "best_effort")
    session = db.session()
    real_commit = session.commit
    committed = {"n": 0}

    def commit():
        committed["n"] += 1
        return real_commit()

    monkeypatch.setattr(session, "commit", commit)

    note = Note(title="Delivery", content="Truck at 9")
    db.session.add(note)

    def record():
        # a reload after the primary commit would hit the database again
        if committed["n"]:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return AuditRecord(entity="note", entity_id=note.id, action="create")

    commit_with_audit(record)
    monkeypatch.undo()

    assert db.session.query(Note).count() == 1
    row = db.session.query(AuditLog).one()
    assert row.entity_id == str(note.id)
