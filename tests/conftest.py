"""Shared test fixtures for the notes app test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, providers faked)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- fake_firebase: ID tokens of the form "token-<uid>" verify as <uid>
- auth_headers / headers_for: Authorization headers for test users
- sign_webhook: Standard Webhooks signature headers for a raw body
- payment_session: a PaymentSession row for cks_1 owned by u1
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from standardwebhooks import Webhook

from app import create_app
from app.config import TestConfig
from app.extensions import db as _db
from app.models.payment import PaymentSession


def _fake_verify_id_token(token, app=None):
    if not token.startswith("token-"):
        raise ValueError("Invalid ID token")
    uid = token[len("token-"):]
    return {"uid": uid, "email": f"{uid}@example.com", "name": f"User {uid}"}


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture(autouse=True)
def fake_firebase():
    """Replace Firebase token verification for every test."""
    with patch(
        "app.services.identity_service.firebase_auth.verify_id_token",
        side_effect=_fake_verify_id_token,
    ) as mock_verify, patch(
        "app.services.identity_service._get_firebase_app", return_value=None
    ):
        yield mock_verify


@pytest.fixture
def headers_for():
    """Build Authorization headers for any uid."""
    def _headers(uid):
        return {"Authorization": f"Bearer token-{uid}"}
    return _headers


@pytest.fixture
def auth_headers(headers_for):
    """Authorization headers for the default test user (u1)."""
    return headers_for("u1")


@pytest.fixture
def sign_webhook():
    """Sign a raw body the way Dodo does. Returns the request headers."""
    def _sign(body, msg_id="msg_test_1", timestamp=None):
        if not isinstance(body, str):
            body = json.dumps(body)
        timestamp = timestamp or datetime.now(timezone.utc)
        signature = Webhook(TestConfig.DODO_WEBHOOK_SECRET).sign(msg_id, timestamp, body)
        return {
            "webhook-id": msg_id,
            "webhook-timestamp": str(int(timestamp.timestamp())),
            "webhook-signature": signature,
        }
    return _sign


@pytest.fixture
def payment_session(app, db_session):
    """PaymentSession(session="cks_1", user="u1"), as written at checkout."""
    row = PaymentSession(
        session_id="cks_1",
        user_id="u1",
        user_email="u1@example.com",
        product_id="pdt_test_premium",
        status="created",
        checkout_url="https://test.checkout.dodopayments.com/cks_1",
    )
    db_session.add(row)
    db_session.commit()
    return row


def make_event(event_type="payment.succeeded", subscription_id="sub_1",
               session_id="cks_1", payment_id="pay_1", total_amount=10905,
               currency="INR", metadata=None, customer_email="buyer@example.com"):
    """Build a Dodo webhook payload. metadata=None omits the key entirely."""
    data = {
        "checkout_session_id": session_id,
        "payment_id": payment_id,
        "subscription_id": subscription_id,
        "total_amount": total_amount,
        "currency": currency,
        "customer": {"email": customer_email, "name": "Buyer"},
        "status": "succeeded",
    }
    if metadata is not None:
        data["metadata"] = metadata
    return {
        "type": event_type,
        "business_id": "bus_test",
        "timestamp": "2025-10-09T19:04:09.525987Z",
        "data": data,
    }


@pytest.fixture
def event_factory():
    return make_event
