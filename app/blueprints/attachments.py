"""Attachments blueprint — file uploads linked to notes.

Routes:
  POST   /api/notes/<id>/attachments      — upload a file to a note
  GET    /api/notes/<id>/attachments      — list a note's files
  POST   /api/upload                      — upload, note_id optional (mobile client)
  GET    /api/attachments/<id>/download   — file content
  PATCH  /api/attachments/<id>            — link an upload to a note {note_id}
  DELETE /api/attachments/<id>            — delete file + metadata
"""

import io
import logging

from flask import Blueprint, abort, jsonify, request, send_file
from flask_login import current_user, login_required

from app.extensions import db, limiter
from app.services import attachment_service, note_service
from app.services.storage_service import StorageError

logger = logging.getLogger(__name__)

attachments_bp = Blueprint("attachments", __name__, url_prefix="/api")


def _store(note_id):
    """Shared upload path. Returns a (response, status) tuple."""
    file = request.files.get("file")

    try:
        attachment = attachment_service.add_attachment(file, current_user.id, note_id)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    except StorageError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 502

    body = attachment.to_dict()
    body["url"] = attachment.public_url
    return jsonify(body), 201


@attachments_bp.route("/notes/<int:note_id>/attachments", methods=["POST"])
@limiter.limit("30 per minute")
@login_required
def upload_to_note(note_id):
    if note_service.get_note(note_id, current_user.id) is None:
        abort(404)
    return _store(note_id)


@attachments_bp.route("/notes/<int:note_id>/attachments", methods=["GET"])
@login_required
def list_for_note(note_id):
    if note_service.get_note(note_id, current_user.id) is None:
        abort(404)
    attachments = attachment_service.list_attachments(note_id, current_user.id)
    return jsonify([a.to_dict() for a in attachments])


@attachments_bp.route("/upload", methods=["POST"])
@limiter.limit("30 per minute")
@login_required
def upload():
    note_id = request.form.get("note_id", type=int)
    if note_id is not None and note_service.get_note(note_id, current_user.id) is None:
        abort(404)
    return _store(note_id)


@attachments_bp.route("/attachments/<attachment_id>/download", methods=["GET"])
@login_required
def download(attachment_id):
    attachment = attachment_service.get_attachment(attachment_id, current_user.id)
    if attachment is None:
        abort(404)

    try:
        data = attachment_service.read_attachment(attachment)
    except StorageError as e:
        logger.warning(f"Download failed for attachment {attachment_id}: {e}")
        return jsonify({"error": str(e)}), 502

    return send_file(
        io.BytesIO(data),
        mimetype=attachment.file_type,
        as_attachment=True,
        download_name=attachment.file_name,
    )


@attachments_bp.route("/attachments/<attachment_id>", methods=["PATCH"])
@login_required
def link(attachment_id):
    """Attach an existing upload to one of the caller's notes."""
    attachment = attachment_service.get_attachment(attachment_id, current_user.id)
    if attachment is None:
        abort(404)

    data = request.get_json(silent=True) or {}
    note_id = data.get("note_id")
    if not isinstance(note_id, int) or isinstance(note_id, bool):
        return jsonify({"error": "note_id is required"}), 400
    if note_service.get_note(note_id, current_user.id) is None:
        abort(404)

    attachment_service.link_to_note(attachment, note_id)
    db.session.commit()
    return jsonify(attachment.to_dict())


@attachments_bp.route("/attachments/<attachment_id>", methods=["DELETE"])
@login_required
def delete(attachment_id):
    attachment = attachment_service.get_attachment(attachment_id, current_user.id)
    if attachment is None:
        abort(404)

    attachment_service.delete_attachment(attachment)
    db.session.commit()
    return jsonify({"success": True, "message": "Attachment deleted"})
