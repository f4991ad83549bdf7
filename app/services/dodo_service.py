"""Dodo Payments service — checkout sessions and webhook signatures.

Responsible for:
- PaymentSettings: the explicit payment configuration handed to the
  checkout initiator and the webhook reconciler
- Creating Dodo checkout sessions and recording them as PaymentSession rows
- Updating PaymentSession status from the browser redirect handlers
- Verifying webhook signatures (Standard Webhooks, HMAC-SHA256)
"""

import json
import logging
from dataclasses import dataclass

import requests
from flask import current_app
from standardwebhooks import Webhook, WebhookVerificationError

from app.extensions import db
from app.models.payment import PaymentSession, utcnow

logger = logging.getLogger(__name__)

API_BASE_URLS = {
    "test_mode": "https://test.dodopayments.com",
    "live_mode": "https://live.dodopayments.com",
}

# Header names Dodo (and older integrations / proxies) have used for the
# signature. The id and timestamp always use the Standard Webhooks names.
SIGNATURE_HEADERS = ("webhook-signature", "dodo-signature", "x-dodo-signature")


class CheckoutError(Exception):
    """Raised when Dodo does not return a usable checkout session."""


class SignatureMissing(Exception):
    """Raised when a webhook arrives without the signature headers."""


class SignatureInvalid(Exception):
    """Raised when the webhook signature does not verify."""


@dataclass(frozen=True)
class PaymentSettings:
    api_key: str
    webhook_secret: str
    default_product_id: str
    app_base_url: str
    environment: str = "test_mode"
    subscription_type: str = "premium"
    default_currency: str = "USD"
    timeout: float = 10.0

    @property
    def api_base_url(self):
        return API_BASE_URLS.get(self.environment, API_BASE_URLS["test_mode"])

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get("DODO_PAYMENTS_API_KEY"),
            webhook_secret=config.get("DODO_WEBHOOK_SECRET"),
            default_product_id=config.get("DODO_PRODUCT_ID"),
            app_base_url=(config.get("APP_BASE_URL") or "").rstrip("/"),
            environment=config.get("DODO_ENVIRONMENT", "test_mode"),
            subscription_type=config.get("SUBSCRIPTION_TYPE", "premium"),
            default_currency=config.get("DEFAULT_CURRENCY", "USD"),
            timeout=float(config.get("PROVIDER_TIMEOUT_SECONDS", 10)),
        )


def get_payment_settings():
    """Return the PaymentSettings built for the current app in create_app()."""
    return current_app.extensions["payment_settings"]


# ──────────────────────────────────────────────
# Checkout
# ──────────────────────────────────────────────

class CheckoutInitiator:
    """Creates Dodo checkout sessions for users upgrading to premium."""

    def __init__(self, settings):
        self.settings = settings

    def create_checkout(self, user_id, user_email=None, user_name=None,
                        product_id=None):
        """Create a checkout session and persist it before returning.

        The PaymentSession row is committed before the checkout URL leaves
        this function, so any webhook for the session can find it.

        Returns the committed PaymentSession.
        Raises CheckoutError on API failures or an unusable response.
        """
        product_id = product_id or self.settings.default_product_id
        if not product_id:
            raise CheckoutError("No product configured for checkout")

        body = {
            "product_cart": [{"product_id": product_id, "quantity": 1}],
            "return_url": f"{self.settings.app_base_url}/payment/success",
            "metadata": {
                "user_id": user_id,
                "user_email": user_email or "",
                "product": product_id,
            },
        }
        if user_email:
            body["customer"] = {"email": user_email, "name": user_name or user_email}

        try:
            resp = requests.post(
                f"{self.settings.api_base_url}/checkouts",
                json=body,
                headers={"Authorization": f"Bearer {self.settings.api_key}"},
                timeout=self.settings.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Dodo checkout creation failed for user {user_id}: {e}")
            raise CheckoutError("Payment provider is unavailable") from e

        session_id = data.get("session_id")
        checkout_url = data.get("checkout_url")
        if not session_id or not checkout_url:
            logger.error(f"Dodo checkout response missing fields: {sorted(data)}")
            raise CheckoutError("Payment provider returned an incomplete session")

        payment_session = PaymentSession(
            session_id=session_id,
            user_id=user_id,
            user_email=user_email,
            product_id=product_id,
            status="created",
            checkout_url=checkout_url,
        )
        db.session.add(payment_session)
        db.session.commit()

        logger.info(f"Checkout session {session_id} created for user {user_id}")
        return payment_session


def update_session_status(session_id, status):
    """Set a PaymentSession's status from a redirect handler.

    Returns the PaymentSession, or None if the session id is unknown.
    Flushes; the caller commits.
    """
    if status not in PaymentSession.STATUSES:
        raise ValueError(f"Invalid payment session status '{status}'")

    payment_session = PaymentSession.query.filter_by(session_id=session_id).first()
    if payment_session is None:
        logger.warning(f"Redirect for unknown checkout session {session_id}")
        return None

    # A webhook may already have settled the session; don't walk it back.
    if payment_session.status == "completed" and status != "completed":
        return payment_session

    payment_session.status = status
    payment_session.updated_at = utcnow()
    db.session.flush()
    return payment_session


# ──────────────────────────────────────────────
# Webhook signatures
# ──────────────────────────────────────────────

def extract_signature_headers(headers):
    """Collect the Standard Webhooks headers, accepting signature aliases.

    Raises SignatureMissing if any of id / timestamp / signature is absent.
    """
    signature = None
    for name in SIGNATURE_HEADERS:
        signature = headers.get(name)
        if signature:
            break

    webhook_id = headers.get("webhook-id")
    timestamp = headers.get("webhook-timestamp")

    if not (signature and webhook_id and timestamp):
        raise SignatureMissing("Missing webhook signature headers")

    return {
        "webhook-id": webhook_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": signature,
    }


def verify_webhook_signature(payload, headers, secret):
    """Verify a webhook delivery and return the parsed JSON body.

    The HMAC comparison is constant-time and the timestamp must be within
    the library's tolerance window (replays of old deliveries fail).

    Raises SignatureMissing, SignatureInvalid, or ValueError for a
    correctly signed body that is not JSON.
    """
    signed_headers = extract_signature_headers(headers)

    if not secret:
        raise SignatureInvalid("Webhook secret is not configured")

    try:
        return Webhook(secret).verify(payload, signed_headers)
    except WebhookVerificationError as e:
        raise SignatureInvalid(str(e)) from e
    except json.JSONDecodeError:
        raise
    except ValueError as e:
        # Malformed signature header (no "v1," prefix, bad base64)
        raise SignatureInvalid(f"Malformed signature: {e}") from e
