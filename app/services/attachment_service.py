"""Attachment service — file_attachments rows plus the stored objects.

Functions flush but do NOT commit — the caller commits.
"""

import logging

from app.extensions import db
from app.models.note import FileAttachment
from app.services import storage_service

logger = logging.getLogger(__name__)


def add_attachment(file, user_id, note_id=None):
    """Upload a file and record its metadata row.

    Raises:
        ValueError: If the file fails validation.
        storage_service.StorageError: If the upload fails.
    """
    ok, error = storage_service.validate_file(file)
    if not ok:
        raise ValueError(error)

    meta = storage_service.upload_file(file, user_id, note_id)

    attachment = FileAttachment(
        note_id=note_id,
        user_id=user_id,
        file_name=meta["file_name"],
        file_size=meta["file_size"],
        file_type=meta["file_type"],
        storage_path=meta["storage_path"],
        storage_bucket=meta["storage_bucket"],
        public_url=meta["public_url"],
    )
    db.session.add(attachment)
    db.session.flush()

    logger.info(f"Attachment {attachment.id} stored at {attachment.storage_path}")
    return attachment


def link_to_note(attachment, note_id):
    """Attach an upload (e.g. one made via /api/upload before the note
    existed) to a note. The stored object keeps its path; only the row
    changes, so the note's listing and delete_note pick it up.
    """
    attachment.note_id = note_id
    db.session.flush()
    logger.info(f"Attachment {attachment.id} linked to note {note_id}")
    return attachment


def list_attachments(note_id, user_id):
    return (
        FileAttachment.query
        .filter_by(note_id=note_id, user_id=user_id)
        .order_by(FileAttachment.created_at)
        .all()
    )


def get_attachment(attachment_id, user_id):
    """Return the attachment if it belongs to user_id, else None."""
    return FileAttachment.query.filter_by(id=attachment_id, user_id=user_id).first()


def read_attachment(attachment):
    """Return the file bytes. Raises storage_service.StorageError."""
    return storage_service.download_file(attachment.storage_path)


def delete_attachment(attachment):
    """Delete the stored object (best-effort) and the metadata row."""
    storage_service.delete_file(attachment.storage_path)
    db.session.delete(attachment)
    db.session.flush()
