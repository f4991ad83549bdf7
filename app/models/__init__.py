# Models package — import all models here so Alembic can discover them.

from app.models.note import Note, FileAttachment  # noqa: F401
from app.models.payment import PaymentSession, Subscription  # noqa: F401
from app.models.webhook_dead_letter import WebhookDeadLetter  # noqa: F401
