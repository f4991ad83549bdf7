"""Webhook dead-letter model.

Every webhook the reconciler could not fully apply (no attributable user,
or a store error) is kept here with its raw payload. Deliveries are still
acknowledged to Dodo; rows are replayed by hand with
`flask replay-dead-letter <id>`.
"""

import uuid

from app.extensions import db


class WebhookDeadLetter(db.Model):
    __tablename__ = "webhook_dead_letters"

    REASONS = ["unattributed", "persistence_error"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    webhook_id = db.Column(
        db.String(255), nullable=True, index=True
    )  # "webhook-id" header, when present
    event_type = db.Column(db.String(255), nullable=True)  # e.g. "payment.succeeded"
    payload = db.Column(db.JSON, nullable=False)
    reason = db.Column(
        db.String(50), nullable=False
    )  # unattributed | persistence_error
    error = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<WebhookDeadLetter {self.event_type} ({self.reason})>"
