"""
Integration tests for the mailbox pages (/inbox, /outbox).

Tests cover:
- Listing order and automatic selection
- Marking received email as viewed
- Remote image blocking and the show images toggle
- Attachment downloads, deletion and bouncing
- Backend failures surfacing as error alerts
"""

import pytest

from webmail.web.routes.mailbox import BOUNCE_ERROR, DELETE_ERROR, FETCH_EMAILS_ERROR

from tests.fixtures.emails import INBOX_BATCHES, NEWSLETTER_CONTENTS, VIEWED_EMAIL

BASE = "/v1/accounts/alice"


@pytest.fixture
def inbox_api(fake_api):
    fake_api.add("GET", f"{BASE}/emails/received", INBOX_BATCHES)
    fake_api.add("GET", f"{BASE}/emails/received/newer/contents", NEWSLETTER_CONTENTS)
    fake_api.add("PATCH", f"{BASE}/emails/received/newer", VIEWED_EMAIL)
    return fake_api


class TestInbox:
    """GET /inbox."""

    @pytest.mark.integration
    def test_newest_email_selected_and_marked_viewed(self, web_client, inbox_api):
        response = web_client.get("/inbox")

        assert response.status_code == 200
        assert "Weekly news" in response.text
        assert response.text.index("Weekly news") < response.text.index("Older message")
        patch = inbox_api.find("PATCH", f"{BASE}/emails/received/newer")
        assert patch is not None
        assert inbox_api.json_of(patch) == [{"op": "replace", "path": "/viewed", "value": True}]

    @pytest.mark.integration
    def test_remote_images_blocked_by_default(self, web_client, inbox_api):
        response = web_client.get("/inbox")

        assert "track.example" not in response.text
        assert "Show images" in response.text
        assert 'target="_blank"' in response.text

    @pytest.mark.integration
    def test_show_images(self, web_client, inbox_api):
        response = web_client.get("/inbox", params={"email": "newer", "images": "shown"})

        assert 'src="https://track.example/pixel.gif"' in response.text
        assert "Hide images" in response.text

    @pytest.mark.integration
    def test_viewed_email_not_patched(self, web_client, inbox_api):
        inbox_api.add("GET", f"{BASE}/emails/received/older/contents", NEWSLETTER_CONTENTS)

        web_client.get("/inbox", params={"email": "older"})

        assert inbox_api.find("PATCH", f"{BASE}/emails/received/older") is None

    @pytest.mark.integration
    def test_empty_mailbox(self, web_client, fake_api):
        fake_api.add("GET", f"{BASE}/emails/received", [])

        response = web_client.get("/inbox")

        assert response.status_code == 200
        assert "This mailbox is empty" in response.text
        assert "Select an email to view" in response.text

    @pytest.mark.integration
    def test_listing_failure(self, web_client, fake_api):
        fake_api.add("GET", f"{BASE}/emails/received", {"message": "down"}, status_code=500)

        response = web_client.get("/inbox")

        assert response.status_code == 502
        assert FETCH_EMAILS_ERROR in response.text

    @pytest.mark.integration
    def test_home_redirects_to_inbox(self, web_client):
        response = web_client.get("/", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/inbox"


class TestOutbox:
    """GET /outbox."""

    @pytest.mark.integration
    def test_sent_email_not_marked_viewed(self, web_client, fake_api):
        fake_api.add("GET", f"{BASE}/emails/sent", INBOX_BATCHES)
        fake_api.add("GET", f"{BASE}/emails/sent/newer/contents", NEWSLETTER_CONTENTS)

        response = web_client.get("/outbox")

        assert response.status_code == 200
        assert "Weekly news" in response.text
        assert all(r.method == "GET" for r in fake_api.requests)
        assert "Bounce email" not in response.text


class TestActions:
    """Attachment, delete and bounce actions."""

    @pytest.mark.integration
    def test_attachment_redirects_to_signed_url(self, web_client, fake_api):
        fake_api.add(
            "GET", f"{BASE}/emails/received/newer/attachments/att-1", {"url": "https://files.example/att-1"}
        )

        response = web_client.get("/inbox/newer/attachments/att-1", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://files.example/att-1"

    @pytest.mark.integration
    def test_delete(self, web_client, fake_api):
        fake_api.add("DELETE", f"{BASE}/emails/received/newer", VIEWED_EMAIL)

        response = web_client.post("/inbox/newer/delete", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/inbox"

    @pytest.mark.integration
    def test_delete_failure(self, web_client, fake_api):
        response = web_client.post("/outbox/missing/delete", follow_redirects=False)

        assert response.status_code == 502
        assert DELETE_ERROR in response.text

    @pytest.mark.integration
    def test_bounce(self, web_client, fake_api):
        fake_api.add("POST", f"{BASE}/emails/received/newer/bounce", status_code=204)

        response = web_client.post("/inbox/newer/bounce", follow_redirects=False)

        assert response.status_code == 303

    @pytest.mark.integration
    def test_bounce_failure(self, web_client, fake_api):
        fake_api.add("POST", f"{BASE}/emails/received/newer/bounce", status_code=500)

        response = web_client.post("/inbox/newer/bounce", follow_redirects=False)

        assert response.status_code == 502
        assert BOUNCE_ERROR in response.text

    @pytest.mark.integration
    def test_post_without_csrf_token_rejected(self, web_client, fake_api):
        del web_client.headers["X-CSRF-Token"]

        response = web_client.post("/inbox/newer/delete", follow_redirects=False)

        assert response.status_code == 403
        assert fake_api.requests == []
