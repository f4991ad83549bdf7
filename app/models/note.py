"""Note models.

- Note: a user's text note. Owned by the Firebase uid in user_id; there is
  no local users table, identity lives in Firebase.
- FileAttachment: metadata row for a file stored in Supabase Storage (prod)
  or on local disk (dev). note_id is nullable for uploads made before the
  note was saved.
"""

import uuid

from app.extensions import db


class Note(db.Model):
    __tablename__ = "notes"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)  # Firebase uid
    user_email = db.Column(db.String(255), nullable=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    attachments = db.relationship(
        "FileAttachment",
        back_populates="note",
        lazy="selectin",
        order_by="FileAttachment.created_at",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "attachments": [a.to_dict() for a in self.attachments],
        }

    def __repr__(self):
        return f"<Note {self.id} {self.title[:30]!r}>"


class FileAttachment(db.Model):
    __tablename__ = "file_attachments"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    note_id = db.Column(
        db.Integer, db.ForeignKey("notes.id"), nullable=True, index=True
    )
    user_id = db.Column(db.String(128), nullable=False, index=True)
    file_name = db.Column(db.String(255), nullable=False)        # original filename
    file_size = db.Column(db.Integer, nullable=False)            # bytes
    file_type = db.Column(db.String(100), nullable=False)        # MIME type
    storage_path = db.Column(db.String(500), nullable=False)     # path in bucket / on disk
    storage_bucket = db.Column(db.String(100), nullable=False)
    public_url = db.Column(db.String(1000), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    note = db.relationship("Note", back_populates="attachments")

    @property
    def is_image(self):
        return bool(self.file_type) and self.file_type.startswith("image/")

    @property
    def human_size(self):
        """Return human-readable file size."""
        if self.file_size < 1024:
            return f"{self.file_size} B"
        elif self.file_size < 1024 * 1024:
            return f"{self.file_size / 1024:.1f} KB"
        else:
            return f"{self.file_size / (1024 * 1024):.1f} MB"

    def to_dict(self):
        return {
            "id": self.id,
            "note_id": self.note_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "human_size": self.human_size,
            "file_type": self.file_type,
            "is_image": self.is_image,
            "storage_path": self.storage_path,
            "storage_bucket": self.storage_bucket,
            "public_url": self.public_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<FileAttachment {self.file_name} ({self.file_type})>"
