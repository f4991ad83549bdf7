"""Note service — CRUD for a user's notes.

Title and content are sanitized with bleach.clean() to strip HTML tags.
Every lookup is scoped by user_id: another user's note behaves exactly
like a missing one.

Functions flush but do NOT commit — the caller commits.
"""

import bleach

from app.extensions import db
from app.models.note import Note
from app.services import attachment_service


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(str(text), tags=[], strip=True).strip()


def list_notes(user_id):
    """Return the user's notes, newest first."""
    return (
        Note.query
        .filter_by(user_id=user_id)
        .order_by(Note.created_at.desc(), Note.id.desc())
        .all()
    )


def get_note(note_id, user_id):
    """Return the note if it exists and belongs to user_id, else None."""
    return Note.query.filter_by(id=note_id, user_id=user_id).first()


def create_note(user_id, user_email, title, content):
    """Create a new note.

    Raises:
        ValueError: If title or content is empty after sanitizing.
    """
    title = _sanitize(title)
    content = _sanitize(content)

    if not title or not content:
        raise ValueError("Title and content are required")

    note = Note(
        user_id=user_id,
        user_email=user_email,
        title=title[:255],
        content=content,
    )
    db.session.add(note)
    db.session.flush()
    return note


def update_note(note, title=None, content=None):
    """Update title and/or content. Omitted fields are left unchanged.

    Raises:
        ValueError: If a provided field is empty after sanitizing.
    """
    if title is not None:
        title = _sanitize(title)
        if not title:
            raise ValueError("Title cannot be empty")
        note.title = title[:255]

    if content is not None:
        content = _sanitize(content)
        if not content:
            raise ValueError("Content cannot be empty")
        note.content = content

    db.session.flush()
    return note


def delete_note(note):
    """Delete a note and its attachments (storage delete is best-effort)."""
    for attachment in list(note.attachments):
        attachment_service.delete_attachment(attachment)

    db.session.delete(note)
    db.session.flush()
