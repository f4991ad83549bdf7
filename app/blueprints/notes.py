"""Notes blueprint — /api/notes

Routes:
  GET    /api/notes          — list the caller's notes (newest first)
  POST   /api/notes          — create a note
  GET    /api/notes/<id>     — one note with its attachments
  PUT    /api/notes/<id>     — update title and/or content
  DELETE /api/notes/<id>     — delete a note and its attachments

Every route is scoped to current_user; another user's note is a 404.
"""

import logging

from flask import Blueprint, abort, jsonify, request
from flask_login import current_user, login_required

from app.extensions import db
from app.services import note_service

logger = logging.getLogger(__name__)

notes_bp = Blueprint("notes", __name__, url_prefix="/api/notes")


def _get_own_note_or_404(note_id):
    note = note_service.get_note(note_id, current_user.id)
    if note is None:
        abort(404)
    return note


@notes_bp.route("", methods=["GET"])
@login_required
def list_notes():
    notes = note_service.list_notes(current_user.id)
    return jsonify([n.to_dict() for n in notes])


@notes_bp.route("", methods=["POST"])
@login_required
def create_note():
    data = request.get_json(silent=True) or {}

    try:
        note = note_service.create_note(
            user_id=current_user.id,
            user_email=current_user.email,
            title=data.get("title"),
            content=data.get("content"),
        )
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    logger.info(f"Note {note.id} created by {current_user.id}")
    return jsonify(note.to_dict()), 201


@notes_bp.route("/<int:note_id>", methods=["GET"])
@login_required
def get_note(note_id):
    return jsonify(_get_own_note_or_404(note_id).to_dict())


@notes_bp.route("/<int:note_id>", methods=["PUT"])
@login_required
def update_note(note_id):
    note = _get_own_note_or_404(note_id)
    data = request.get_json(silent=True) or {}

    try:
        note_service.update_note(
            note,
            title=data.get("title"),
            content=data.get("content"),
        )
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400

    return jsonify(note.to_dict())


@notes_bp.route("/<int:note_id>", methods=["DELETE"])
@login_required
def delete_note(note_id):
    note = _get_own_note_or_404(note_id)
    note_service.delete_note(note)
    db.session.commit()

    logger.info(f"Note {note_id} deleted by {current_user.id}")
    return jsonify({"success": True, "message": "Note deleted"})
