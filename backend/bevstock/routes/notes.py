# Overview: Flask API routes for shift notes.

from flask import Blueprint, g

from ..decorators import require_auth, service_errors
from ..services import notes_service
from ._helpers import json_body

notes_bp = Blueprint("notes", __name__, url_prefix="/api/notes")


@notes_bp.get("")
@require_auth
@service_errors("list notes")
def list_notes():
    notes = notes_service.list_notes()
    return {"items": [n.to_dict() for n in notes], "count": len(notes)}


@notes_bp.post("")
@require_auth
@service_errors("create note")
def create_note():
    data = json_body()
    note = notes_service.create_note(
        title=data.get("title"), content=data.get("content"), actor_id=g.caller.user_id
    )
    return {"note": note.to_dict()}, 201


@notes_bp.put("/<int:note_id>")
@require_auth
@service_errors("update note")
def update_note(note_id: int):
    data = json_body()
    note = notes_service.update_note(
        note_id, title=data.get("title"), content=data.get("content"), actor_id=g.caller.user_id
    )
    return {"note": note.to_dict()}


@notes_bp.delete("/<int:note_id>")
@require_auth
@service_errors("delete note")
def delete_note(note_id: int):
    notes_service.delete_note(note_id, actor_id=g.caller.user_id)
    return {"deleted": True, "id": note_id}
