"""Tests for GET /api/user/subscription-status and /api/user/me."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from app.models.payment import Subscription

STATUS_URL = "/api/user/subscription-status"


def _subscription(user_id="u1", status="premium", is_active=True, created_at=None, **kwargs):
    return Subscription(
        user_id=user_id,
        status=status,
        is_active=is_active,
        subscription_type="premium",
        product_id="pdt_test_premium",
        created_at=created_at or datetime.now(timezone.utc),
        **kwargs,
    )


class TestSubscriptionStatus:

    def test_requires_auth(self, client):
        assert client.get(STATUS_URL).status_code == 401

    def test_free_user(self, client, auth_headers):
        resp = client.get(STATUS_URL, headers=auth_headers)

        assert resp.status_code == 200
        assert resp.get_json() == {
            "isPremium": False,
            "subscription": None,
            "status": "free",
        }

    def test_active_premium(self, client, db_session, auth_headers):
        db_session.add(_subscription(
            provider_subscription_id="sub_1",
            amount=Decimal("109.05"),
            currency="INR",
        ))
        db_session.commit()

        data = client.get(STATUS_URL, headers=auth_headers).get_json()

        assert data["isPremium"] is True
        assert data["status"] == "premium"
        assert data["subscription"]["subscription_id"] == "sub_1"
        assert data["subscription"]["amount"] == 109.05
        assert data["subscription"]["currency"] == "INR"

    def test_inactive_rows_are_free(self, client, db_session, auth_headers):
        db_session.add(_subscription(status="failed", is_active=False,
                                     provider_subscription_id="sub_f"))
        db_session.add(_subscription(status="cancelled", is_active=False,
                                     provider_subscription_id="sub_c"))
        db_session.commit()

        data = client.get(STATUS_URL, headers=auth_headers).get_json()
        assert data["isPremium"] is False
        assert data["status"] == "free"
        assert data["subscription"] is None

    def test_latest_active_row_wins(self, client, db_session, auth_headers):
        now = datetime.now(timezone.utc)
        db_session.add(_subscription(provider_subscription_id="sub_old",
                                     created_at=now - timedelta(days=30)))
        db_session.add(_subscription(provider_subscription_id="sub_new",
                                     created_at=now))
        db_session.commit()

        data = client.get(STATUS_URL, headers=auth_headers).get_json()
        assert data["subscription"]["subscription_id"] == "sub_new"

    def test_other_users_rows_ignored(self, client, db_session, auth_headers):
        db_session.add(_subscription(user_id="u2", provider_subscription_id="sub_u2"))
        db_session.commit()

        data = client.get(STATUS_URL, headers=auth_headers).get_json()
        assert data["isPremium"] is False

    @patch("app.blueprints.user.get_subscription_status")
    def test_store_error_returns_500(self, mock_status, client, auth_headers):
        mock_status.side_effect = RuntimeError("db down")

        resp = client.get(STATUS_URL, headers=auth_headers)

        assert resp.status_code == 500
        assert "error" in resp.get_json()


class TestMe:

    def test_me(self, client, auth_headers):
        resp = client.get("/api/user/me", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.get_json() == {
            "user_id": "u1",
            "email": "u1@example.com",
            "name": "User u1",
        }
