"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- A fake emails API served through httpx.MockTransport
- API clients bound to the fake backend
- A configured FastAPI TestClient with CSRF tokens in place
- Editable regions and composers for editor tests
"""

import json
from typing import Callable, Generator, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from webmail.composer.dom import EditableRegion, Selection, TextRange
from webmail.composer.editor import RichTextComposer
from webmail.core.models import ApiConfig, AppConfig, AuthConfig, MailConfig
from webmail.mail.client import EmailsApiClient
from webmail.render.sanitize import Sanitizer

from tests.fixtures.emails import ACCOUNT_ID

API_BASE_URL = "http://api.test/v1"
CSRF_TOKEN = "test-csrf-token"


class FakeEmailsApi:
    """Routes requests by (method, path) and records everything it receives."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, json_body=None, status_code: int = 200) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if json_body is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=json_body)

        self.routes[(method, path)] = respond

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        return route(request)

    def find(self, method: str, path: str) -> Optional[httpx.Request]:
        for request in self.requests:
            if request.method == method and request.url.path == path:
                return request
        return None

    @staticmethod
    def json_of(request: httpx.Request):
        return json.loads(request.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def fake_api() -> FakeEmailsApi:
    """Empty fake backend; tests register the routes they need."""
    return FakeEmailsApi()


@pytest.fixture
def api_config() -> ApiConfig:
    return ApiConfig(base_url=API_BASE_URL, token="test-token", timeout=5.0)


@pytest.fixture
def api_client(fake_api, api_config) -> Generator[EmailsApiClient, None, None]:
    client = EmailsApiClient(api_config, transport=fake_api.transport)
    yield client
    client.close()


@pytest.fixture
def app_config(api_config) -> AppConfig:
    """Configuration with auth disabled and a small upload limit."""
    return AppConfig(
        mail=MailConfig(domain="example.com", max_upload_size=1000, block_empty_paste=True),
        api=api_config,
        auth=AuthConfig(account_id=ACCOUNT_ID),
    )


@pytest.fixture
def web_client(monkeypatch, fake_api, app_config) -> Generator[TestClient, None, None]:
    """
    TestClient for the web app wired to the fake backend.

    Auth runs in dev mode (no password configured) and every request carries
    a matching CSRF cookie and header.
    """
    for name in ("WEBMAIL_PASSWORD", "WEBMAIL_PASSWORD_HASH", "WEBMAIL_SECRET_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("WEBMAIL_ACCOUNT_ID", ACCOUNT_ID)
    monkeypatch.setenv("WEBMAIL_DOMAIN", "example.com")

    from webmail.web.app import create_app
    from webmail.web.deps import get_account_id, get_api, get_config

    app = create_app()

    def fake_client():
        client = EmailsApiClient(app_config.api, transport=fake_api.transport)
        try:
            yield client
        finally:
            client.close()

    app.dependency_overrides[get_api] = fake_client
    app.dependency_overrides[get_config] = lambda: app_config
    app.dependency_overrides[get_account_id] = lambda: ACCOUNT_ID

    with TestClient(app) as client:
        client.cookies.set("_csrf", CSRF_TOKEN)
        client.headers["X-CSRF-Token"] = CSRF_TOKEN
        yield client


@pytest.fixture
def sanitizer() -> Sanitizer:
    """A private sanitizer so hook state never leaks between tests."""
    return Sanitizer()


@pytest.fixture
def make_composer() -> Callable[..., RichTextComposer]:
    """
    Build a mounted composer over ``html`` with an optional selection.

    Usage: ``make_composer("<p>Hello</p>", 0, 5)``
    """

    def build(html: str = "", start: Optional[int] = None, end: Optional[int] = None, **kwargs) -> RichTextComposer:
        region = EditableRegion()
        selection = Selection(region)
        composer = RichTextComposer(region, selection, **kwargs)
        composer.mount(html)
        if start is not None:
            selection.add_range(TextRange(start, start if end is None else end))
        return composer

    return build
