"""Webhook reconciler — turns Dodo payment events into Subscription rows.

Responsible for:
- Classifying event types into a closed set of kinds
- Resolving the paying user (metadata first, checkout session fallback)
- Creating / updating Subscription rows so redelivery converges on one row
- Dead-lettering events that could not be applied

reconcile() never raises. The webhook route acknowledges every verified
delivery with 200 whatever the outcome here; faults are logged and kept
in webhook_dead_letters for manual replay.
"""

import enum
import logging
from collections import namedtuple
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models.payment import PaymentSession, Subscription, utcnow
from app.models.webhook_dead_letter import WebhookDeadLetter

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Provider synonyms for each kind. Anything else is ignored.
EVENT_KINDS = {
    "payment.succeeded": EventKind.COMPLETED,
    "payment.completed": EventKind.COMPLETED,
    "checkout.completed": EventKind.COMPLETED,
    "payment.failed": EventKind.FAILED,
    "checkout.failed": EventKind.FAILED,
    "payment.cancelled": EventKind.CANCELLED,
    "checkout.cancelled": EventKind.CANCELLED,
}


class ReconcileOutcome(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    IGNORED = "ignored"            # unknown event type
    UNATTRIBUTED = "unattributed"  # no user id could be resolved
    NO_MATCH = "no_match"          # failed/cancelled for a row we never created
    FAILED = "failed"              # store error

    @property
    def is_failure(self):
        return self in (ReconcileOutcome.UNATTRIBUTED, ReconcileOutcome.FAILED)


def classify(event_type):
    """Map a raw event type string to an EventKind, or None if unknown."""
    return EVENT_KINDS.get((event_type or "").strip().lower())


def _as_dict(value):
    return value if isinstance(value, dict) else {}


def _as_str(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class WebhookEvent:
    """The parts of a Dodo webhook payload the reconciler reads."""

    type: str
    kind: EventKind = None
    checkout_session_id: str = None
    payment_id: str = None
    subscription_id: str = None
    total_amount: int = None
    currency: str = None
    customer_email: str = None
    customer_name: str = None
    metadata: dict = field(default_factory=dict)

    @property
    def metadata_user_id(self):
        return _as_str(self.metadata.get("user_id"))

    @property
    def metadata_user_email(self):
        return _as_str(self.metadata.get("user_email"))

    @property
    def metadata_product(self):
        return _as_str(self.metadata.get("product"))

    @classmethod
    def from_payload(cls, payload):
        payload = _as_dict(payload)
        data = _as_dict(payload.get("data"))
        customer = _as_dict(data.get("customer"))
        event_type = _as_str(payload.get("type")) or ""

        total_amount = data.get("total_amount")
        if isinstance(total_amount, bool) or not isinstance(total_amount, (int, float, str)):
            total_amount = None

        return cls(
            type=event_type,
            kind=classify(event_type),
            checkout_session_id=_as_str(data.get("checkout_session_id")),
            payment_id=_as_str(data.get("payment_id")),
            subscription_id=_as_str(data.get("subscription_id")),
            total_amount=total_amount,
            currency=_as_str(data.get("currency")),
            customer_email=_as_str(customer.get("email")),
            customer_name=_as_str(customer.get("name")),
            metadata=_as_dict(data.get("metadata")),
        )

    def describe(self):
        """Short context string for log lines."""
        return (
            f"type={self.type} session={self.checkout_session_id} "
            f"payment={self.payment_id} subscription={self.subscription_id}"
        )


Attribution = namedtuple("Attribution", ["user_id", "email", "payment_session"])


def minor_to_major(total_amount):
    """Convert a provider amount in minor units (10905) to Decimal('109.05')."""
    if total_amount is None:
        return None
    try:
        return (Decimal(str(total_amount)) / 100).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


class Reconciler:
    """Applies webhook events to the subscriptions table.

    One reconcile() call is one transaction: it commits on success and
    rolls back on any error.
    """

    def __init__(self, settings, session=None):
        self.settings = settings
        self.session = session or db.session
        self._handlers = {
            EventKind.COMPLETED: self._handle_completed,
            EventKind.FAILED: self._handle_failed,
            EventKind.CANCELLED: self._handle_cancelled,
        }

    def reconcile(self, payload, webhook_id=None, dead_letter=True):
        """Apply one webhook payload. Returns a ReconcileOutcome; never raises.

        Args:
            payload: the parsed JSON body.
            webhook_id: the "webhook-id" header, kept on dead letters.
            dead_letter: record failures in webhook_dead_letters. Replays
                pass False so a failing replay doesn't duplicate its row.
        """
        event_type = None
        try:
            event = WebhookEvent.from_payload(payload)
            event_type = event.type

            if event.kind is None:
                logger.info(f"Ignoring unhandled webhook event type '{event.type}'")
                return ReconcileOutcome.IGNORED

            logger.info(f"Reconciling {event.describe()}")
            outcome = self._handlers[event.kind](event)

            if outcome is ReconcileOutcome.UNATTRIBUTED:
                self.session.rollback()
                logger.warning(f"Dropping unattributable webhook: {event.describe()}")
                if dead_letter:
                    self._dead_letter(payload, event_type, webhook_id, "unattributed")
                return outcome

            self.session.commit()
            logger.info(f"Webhook {event.type} reconciled: {outcome.value}")
            return outcome

        except Exception as e:
            logger.error(
                f"Error reconciling webhook {event_type} (id={webhook_id}): {e}",
                exc_info=True,
            )
            self.session.rollback()
            if dead_letter:
                self._dead_letter(
                    payload, event_type, webhook_id, "persistence_error", error=str(e)
                )
            return ReconcileOutcome.FAILED

    # ──────────────────────────────────────────────
    # Lookups
    # ──────────────────────────────────────────────

    def _resolve_user(self, event):
        """Find the paying user: metadata.user_id, else the checkout session owner.

        Returns an Attribution, or None when neither source has a user.
        """
        payment_session = None
        if event.checkout_session_id:
            payment_session = (
                self.session.query(PaymentSession)
                .filter_by(session_id=event.checkout_session_id)
                .first()
            )

        user_id = event.metadata_user_id
        if not user_id and payment_session is not None:
            user_id = payment_session.user_id
            logger.info(
                f"Resolved user {user_id} from checkout session {event.checkout_session_id}"
            )

        if not user_id:
            return None

        email = (
            event.metadata_user_email
            or event.customer_email
            or (payment_session.user_email if payment_session is not None else None)
        )
        return Attribution(user_id, email, payment_session)

    def _by_provider_subscription_id(self, subscription_id):
        return (
            self.session.query(Subscription)
            .filter_by(provider_subscription_id=subscription_id)
            .first()
        )

    def _find_subscription(self, event):
        """Find the row a COMPLETED event refers to, if it already exists.

        Keyed by provider subscription id; events without one fall back to
        the payment id so a replayed one-off payment is not recorded twice.
        """
        if event.subscription_id:
            return self._by_provider_subscription_id(event.subscription_id)
        if event.payment_id:
            return (
                self.session.query(Subscription)
                .filter_by(payment_id=event.payment_id)
                .first()
            )
        return None

    def _find_for_transition(self, event):
        """Find the row a FAILED / CANCELLED event refers to.

        Provider subscription id first, then the checkout session id.
        """
        sub = None
        if event.subscription_id:
            sub = self._by_provider_subscription_id(event.subscription_id)
        if sub is None and event.checkout_session_id:
            sub = (
                self.session.query(Subscription)
                .filter_by(session_id=event.checkout_session_id)
                .order_by(Subscription.created_at.desc())
                .first()
            )
        return sub

    # ──────────────────────────────────────────────
    # Event Handlers
    # ──────────────────────────────────────────────

    def _handle_completed(self, event):
        """Grant premium: update the known row, or create one."""
        attribution = self._resolve_user(event)
        if attribution is None:
            return ReconcileOutcome.UNATTRIBUTED

        existing = self._find_subscription(event)
        if existing is not None:
            logger.info(f"Subscription {existing.id} already exists, reactivating")
            self._activate(existing, event)
            outcome = ReconcileOutcome.UPDATED
        else:
            outcome = self._create_subscription(event, attribution)

        # Re-read: a rollback in _create_subscription expires loaded rows.
        self._settle_session(event.checkout_session_id, "completed")
        return outcome

    def _create_subscription(self, event, attribution):
        sub = Subscription(
            user_id=attribution.user_id,
            user_email=attribution.email,
            status="premium",
            subscription_type=self.settings.subscription_type,
            product_id=event.metadata_product or self.settings.default_product_id,
            session_id=event.checkout_session_id,
            payment_id=event.payment_id,
            provider_subscription_id=event.subscription_id,
            amount=minor_to_major(event.total_amount),
            currency=(event.currency or self.settings.default_currency).upper(),
            start_date=utcnow(),
            is_active=True,
        )
        self.session.add(sub)

        try:
            self.session.flush()
        except IntegrityError:
            # A concurrent delivery inserted the same provider subscription
            # id between our lookup and this insert: update that row instead.
            self.session.rollback()
            if not event.subscription_id:
                raise
            existing = self._by_provider_subscription_id(event.subscription_id)
            if existing is None:
                raise
            logger.info(
                f"Subscription {event.subscription_id} inserted concurrently, updating"
            )
            self._activate(existing, event)
            return ReconcileOutcome.UPDATED

        logger.info(
            f"Created subscription {sub.id} for user {attribution.user_id} "
            f"({sub.amount} {sub.currency})"
        )
        return ReconcileOutcome.CREATED

    def _activate(self, sub, event):
        sub.status = "premium"
        sub.is_active = True
        if event.payment_id:
            sub.payment_id = event.payment_id
        if event.checkout_session_id and not sub.session_id:
            sub.session_id = event.checkout_session_id
        sub.updated_at = utcnow()
        self.session.flush()

    def _handle_failed(self, event):
        return self._deactivate(event, "failed")

    def _handle_cancelled(self, event):
        outcome = self._deactivate(event, "cancelled")
        if outcome is ReconcileOutcome.UPDATED:
            self._settle_session(event.checkout_session_id, "cancelled")
        return outcome

    def _deactivate(self, event, status):
        """Move an existing row to failed / cancelled. Never creates rows."""
        attribution = self._resolve_user(event)
        if attribution is None:
            return ReconcileOutcome.UNATTRIBUTED

        sub = self._find_for_transition(event)
        if sub is None:
            logger.info(f"No subscription to mark {status}: {event.describe()}")
            return ReconcileOutcome.NO_MATCH

        sub.status = status
        sub.is_active = False
        sub.updated_at = utcnow()
        self.session.flush()

        logger.info(f"Subscription {sub.id} marked {status} for user {attribution.user_id}")
        return ReconcileOutcome.UPDATED

    def _settle_session(self, session_id, status):
        if not session_id:
            return
        payment_session = (
            self.session.query(PaymentSession)
            .filter_by(session_id=session_id)
            .first()
        )
        if payment_session is None or payment_session.status == status:
            return
        # A completed checkout stays completed, as in update_session_status.
        if payment_session.status == "completed":
            return
        payment_session.status = status
        payment_session.updated_at = utcnow()
        self.session.flush()

    # ──────────────────────────────────────────────
    # Dead letters
    # ──────────────────────────────────────────────

    def _dead_letter(self, payload, event_type, webhook_id, reason, error=None):
        """Keep an unapplied event for manual replay. Never raises."""
        try:
            self.session.add(WebhookDeadLetter(
                webhook_id=webhook_id,
                event_type=event_type,
                payload=payload if isinstance(payload, (dict, list)) else {"raw": str(payload)},
                reason=reason,
                error=error,
            ))
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(
                f"Failed to dead-letter webhook {event_type} (id={webhook_id}): {e}",
                exc_info=True,
            )


def replay_dead_letter(letter, settings):
    """Re-run reconciliation for a dead letter; mark it resolved on success.

    Returns the ReconcileOutcome.
    """
    outcome = Reconciler(settings).reconcile(
        letter.payload, webhook_id=letter.webhook_id, dead_letter=False
    )
    if not outcome.is_failure:
        letter.resolved_at = utcnow()
        db.session.commit()
    return outcome
