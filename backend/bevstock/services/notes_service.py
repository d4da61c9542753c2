# Overview: Shift notes (free text kept alongside the inventory).

from __future__ import annotations

from ..extensions import db
from ..models import Note
from ..validation import ModelValidationPolicy, validate_payload
from .audit_service import AuditRecord, commit_with_audit
from .persistence import run_in_transaction

NOTE_POLICY = ModelValidationPolicy(
    writable_fields={"title", "content"},
    required_on_create={"title", "content"},
)


class NoteNotFoundError(LookupError):
    pass


def _require_note(note_id: int) -> Note:
    note = db.session.get(Note, note_id)
    if note is None:
        raise NoteNotFoundError(f"Note {note_id} not found")
    return note


def list_notes() -> list[Note]:
    return db.session.query(Note).order_by(Note.created_at.desc(), Note.id.desc()).all()


def create_note(*, title, content, actor_id: str | None = None) -> Note:
    patch = validate_payload(
        model=Note, payload={"title": title, "content": content}, policy=NOTE_POLICY, partial=False
    )

    def _op():
        note = Note(created_by=actor_id, **patch)
        db.session.add(note)
        db.session.flush()
        return note

    return run_in_transaction(_op, commit=lambda note: commit_with_audit(lambda: AuditRecord(
        entity="note", entity_id=note.id, action="create", user_id=actor_id,
    )))


def update_note(note_id: int, *, title, content, actor_id: str | None = None) -> Note:
    patch = validate_payload(
        model=Note, payload={"title": title, "content": content}, policy=NOTE_POLICY, partial=False
    )
    note = _require_note(note_id)

    def _op():
        note.title = patch["title"]
        note.content = patch["content"]
        db.session.flush()
        return note

    return run_in_transaction(_op, commit=lambda n: commit_with_audit(AuditRecord(
        entity="note", entity_id=n.id, action="update", user_id=actor_id,
    )))


def delete_note(note_id: int, *, actor_id: str | None = None) -> None:
    note = _require_note(note_id)
    record = AuditRecord(entity="note", entity_id=note.id, action="delete", user_id=actor_id)

    def _op():
        db.session.delete(note)
        db.session.flush()

    run_in_transaction(_op, commit=lambda _: commit_with_audit(record))
