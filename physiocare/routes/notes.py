from flask import Blueprint, request

from ..schemas import note_fields, note_to_dict
from ..services.store import get_store
from ..utils.responses import ok

notes_bp = Blueprint("notes", __name__, url_prefix="/api/notes")


@notes_bp.route("/<int:note_id>", methods=["PATCH"])
def update_note(note_id):
    fields = note_fields(request.get_json(silent=True), partial=True)
    store = get_store()
    note = store.update_note(note_id, fields)
    store.commit()
    return ok(note_to_dict(store.get_note(note.id)), message="Note updated successfully!")


@notes_bp.route("/<int:note_id>", methods=["DELETE"])
def delete_note(note_id):
    store = get_store()
    store.delete_note(note_id)
    store.commit()
    return ok(message="Note deleted.")
