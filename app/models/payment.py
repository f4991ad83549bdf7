"""Payment models.

- PaymentSession: one row per Dodo checkout session, written before the
  user is redirected to Dodo. It is the correlation anchor the webhook
  reconciler falls back to when an event carries no user metadata.
- Subscription: a user's premium entitlement, synced from Dodo webhooks.
  provider_subscription_id is UNIQUE; a second event for the same id
  updates the existing row.
"""

import uuid
from datetime import datetime, timezone

from app.extensions import db


def utcnow():
    return datetime.now(timezone.utc)


class PaymentSession(db.Model):
    __tablename__ = "payment_sessions"

    # -- Valid statuses --
    STATUSES = ["created", "completed", "cancelled"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    session_id = db.Column(
        db.String(255), unique=True, nullable=False
    )  # e.g. "cks_URuC2d..."
    user_id = db.Column(db.String(128), nullable=False, index=True)
    user_email = db.Column(db.String(255), nullable=True)
    product_id = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.String(50), default="created", nullable=False
    )  # created | completed | cancelled
    checkout_url = db.Column(db.String(1000), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    def __repr__(self):
        return f"<PaymentSession {self.session_id} ({self.status})>"


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    # -- Valid statuses --
    STATUSES = ["premium", "failed", "cancelled"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(db.String(128), nullable=False, index=True)
    user_email = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.String(50), nullable=False
    )  # premium | failed | cancelled
    subscription_type = db.Column(db.String(50), nullable=True)
    product_id = db.Column(db.String(255), nullable=True)
    session_id = db.Column(db.String(255), nullable=True, index=True)
    payment_id = db.Column(db.String(255), nullable=True, index=True)
    provider_subscription_id = db.Column(
        db.String(255), unique=True, nullable=True
    )  # e.g. "sub_65BdAy..."
    amount = db.Column(db.Numeric(12, 2), nullable=True)  # major units
    currency = db.Column(db.String(10), nullable=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    @property
    def is_premium(self):
        return self.is_active and self.status == "premium"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "status": self.status,
            "subscription_type": self.subscription_type,
            "product_id": self.product_id,
            "session_id": self.session_id,
            "payment_id": self.payment_id,
            "subscription_id": self.provider_subscription_id,
            "amount": float(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Subscription {self.provider_subscription_id} ({self.status})>"
