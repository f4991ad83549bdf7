"""Security tests.

Tests:
- Security headers are present on responses
- Protected routes reject missing / malformed / invalid bearer tokens
- Public config never leaks server-side secrets
- Errors come back as JSON
"""

import pytest


class TestSecurityHeaders:
    """Verify security headers are present on responses."""

    def test_x_content_type_options(self, client):
        response = client.get("/api/health")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"

    def test_x_frame_options(self, client):
        response = client.get("/api/health")
        assert response.headers.get("X-Frame-Options") == "DENY"

    def test_referrer_policy(self, client):
        response = client.get("/api/health")
        assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_permissions_policy(self, client):
        """Permissions-Policy should restrict browser features."""
        pp = client.get("/api/health").headers.get("Permissions-Policy")
        assert pp is not None
        assert "camera=()" in pp
        assert "microphone=()" in pp

    def test_csp_header(self, client):
        """Content-Security-Policy should allow Firebase and Dodo, nothing else."""
        csp = client.get("/api/health").headers.get("Content-Security-Policy")
        assert csp is not None
        assert "default-src 'self'" in csp
        assert "frame-ancestors 'none'" in csp
        assert "dodopayments.com" in csp

    def test_headers_on_webhook_responses(self, client):
        response = client.post("/api/payments/webhook", data="{}")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"


class TestBearerAuth:
    """Every protected route needs a valid Firebase ID token."""

    PROTECTED = [
        ("GET", "/api/notes"),
        ("POST", "/api/notes"),
        ("GET", "/api/notes/1"),
        ("PUT", "/api/notes/1"),
        ("DELETE", "/api/notes/1"),
        ("POST", "/api/notes/1/attachments"),
        ("GET", "/api/notes/1/attachments"),
        ("POST", "/api/upload"),
        ("GET", "/api/attachments/abc/download"),
        ("PATCH", "/api/attachments/abc"),
        ("DELETE", "/api/attachments/abc"),
        ("POST", "/api/payments/create-checkout"),
        ("GET", "/api/user/subscription-status"),
        ("GET", "/api/user/me"),
    ]

    @pytest.mark.parametrize("method,url", PROTECTED)
    def test_no_token(self, client, method, url):
        resp = client.open(url, method=method)
        assert resp.status_code == 401

    @pytest.mark.parametrize("header", [
        "token-u1",              # missing scheme
        "Basic token-u1",        # wrong scheme
        "Bearer ",               # empty token
        "Bearer forged-token",   # rejected by Firebase
    ])
    def test_bad_authorization_header(self, client, header):
        resp = client.get("/api/user/me", headers={"Authorization": header})
        assert resp.status_code == 401

    def test_scheme_is_case_insensitive(self, client):
        resp = client.get("/api/user/me", headers={"Authorization": "bearer token-u1"})
        assert resp.status_code == 200

    def test_user_does_not_leak_between_requests(self, client, headers_for):
        assert client.get("/api/user/me", headers=headers_for("u1")).status_code == 200
        assert client.get("/api/user/me").status_code == 401
        resp = client.get("/api/user/me", headers=headers_for("u2"))
        assert resp.get_json()["user_id"] == "u2"


class TestPublicEndpoints:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}

    def test_firebase_config_has_no_secrets(self, client):
        resp = client.get("/api/config/firebase")

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["projectId"] == "noteapp-test"
        assert set(data) == {
            "apiKey", "authDomain", "projectId",
            "storageBucket", "messagingSenderId", "appId",
        }
        body = resp.get_data(as_text=True)
        assert "whsec_" not in body


class TestJsonErrors:

    def test_404_is_json(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json() == {"success": False, "error": "Not found"}

    def test_405_is_json(self, client):
        resp = client.delete("/api/health")
        assert resp.status_code == 405
        assert resp.get_json()["error"] == "Method not allowed"
