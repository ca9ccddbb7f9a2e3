"""
Integration tests for authentication and security middleware.

Tests cover:
- Security headers on every response
- Login, sessions and logout when a password is configured
- CSRF double-submit checks for signed-in users
- Custom error pages
"""

import pytest
from fastapi.testclient import TestClient

from webmail.mail.client import EmailsApiClient
from webmail.web import security

from tests.fixtures.emails import ACCOUNT, ACCOUNT_ID

BASE = "/v1/accounts/alice"


@pytest.fixture
def protected_client(monkeypatch, fake_api, app_config):
    """TestClient for an app that requires the password ``hunter2``."""
    monkeypatch.delenv("WEBMAIL_PASSWORD_HASH", raising=False)
    monkeypatch.setenv("WEBMAIL_PASSWORD", "hunter2")
    monkeypatch.setenv("WEBMAIL_SECRET_KEY", "test-secret")
    monkeypatch.setenv("WEBMAIL_ACCOUNT_ID", ACCOUNT_ID)
    monkeypatch.setattr(security, "_throttle", security.LoginThrottle())

    from webmail.web.app import create_app
    from webmail.web.deps import get_api, get_config

    app = create_app()

    def fake_client():
        client = EmailsApiClient(app_config.api, transport=fake_api.transport)
        try:
            yield client
        finally:
            client.close()

    app.dependency_overrides[get_api] = fake_client
    app.dependency_overrides[get_config] = lambda: app_config

    with TestClient(app) as client:
        yield client


class TestHeaders:
    """SecurityHeadersMiddleware and error pages."""

    @pytest.mark.integration
    def test_health(self, web_client):
        response = web_client.get("/health")

        assert response.json() == {"status": "ok"}
        assert "frame-src 'none'" in response.headers["Content-Security-Policy"]
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "no-referrer"

    @pytest.mark.integration
    def test_not_found_page(self, web_client):
        response = web_client.get("/nope/at/all/here")

        assert response.status_code == 404
        assert "text/html" in response.headers["content-type"]


class TestLogin:
    """Password login with signed session cookies."""

    @pytest.mark.integration
    def test_redirects_to_login(self, protected_client):
        response = protected_client.get("/inbox", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    @pytest.mark.integration
    def test_htmx_request_gets_redirect_header(self, protected_client):
        response = protected_client.get("/inbox", headers={"HX-Request": "true"})

        assert response.status_code == 401
        assert response.headers["HX-Redirect"] == "/login"

    @pytest.mark.integration
    def test_wrong_password(self, protected_client):
        response = protected_client.post("/login", data={"password": "nope"})

        assert response.status_code == 401
        assert "Invalid password" in response.text

    @pytest.mark.integration
    def test_rate_limited(self, protected_client):
        for _ in range(5):
            protected_client.post("/login", data={"password": "nope"})

        response = protected_client.post("/login", data={"password": "hunter2"})

        assert response.status_code == 429

    @pytest.mark.integration
    def test_login_then_use_session(self, protected_client, fake_api):
        fake_api.add("GET", BASE, ACCOUNT)

        login = protected_client.post("/login", data={"password": "hunter2"}, follow_redirects=False)
        assert login.status_code == 302
        assert "_session" in login.cookies

        response = protected_client.get("/settings")

        assert response.status_code == 200
        assert 'value="Alice"' in response.text
        assert "_csrf" in protected_client.cookies

    @pytest.mark.integration
    def test_csrf_required_after_login(self, protected_client):
        protected_client.post("/login", data={"password": "hunter2"}, follow_redirects=False)

        response = protected_client.post("/compose/format", data={"command": "bold"})

        assert response.status_code == 403

    @pytest.mark.integration
    def test_logout_clears_session(self, protected_client):
        protected_client.post("/login", data={"password": "hunter2"}, follow_redirects=False)

        protected_client.get("/logout", follow_redirects=False)
        response = protected_client.get("/inbox", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/login"
