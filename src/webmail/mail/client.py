"""Client for the emails REST API."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from webmail.core.models import (
    Account,
    ApiConfig,
    Email,
    EmailAttachment,
    EmailBatch,
    EmailContents,
    OutboundMessage,
    PatchOperation,
    PostSignedUrl,
    SignedUrl,
)
from webmail.utils.http import post_form

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class EmailsApiClient:
    """Client for the accounts and emails endpoints of the backend."""

    def __init__(self, config: ApiConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self._transport = transport
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Content-Type": "application/json",
            },
            timeout=config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "EmailsApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _account_url(self, account_id: str, path: str = "") -> str:
        return f"/accounts/{_segment(account_id)}{path}"

    def _request(self, method: str, url: str, **kwargs):
        resp = self._client.request(method, url, **kwargs)
        resp.raise_for_status()
        return resp.json() if resp.content else None

    # ---- Accounts ----

    def get_account(self, account_id: str) -> Account:
        return Account.model_validate(self._request("GET", self._account_url(account_id)))

    def put_account(self, account_id: str, account: Account) -> Account:
        data = self._request("PUT", self._account_url(account_id), json=account.to_wire())
        return Account.model_validate(data)

    def patch_account(self, account_id: str, operations: list[PatchOperation]) -> Account:
        data = self._request(
            "PATCH", self._account_url(account_id), json=[op.to_wire() for op in operations]
        )
        return Account.model_validate(data)

    def delete_account(self, account_id: str) -> Account:
        return Account.model_validate(self._request("DELETE", self._account_url(account_id)))

    # ---- Received emails ----

    def _received(self, account_id: str, email_id: Optional[str] = None, path: str = "") -> str:
        url = self._account_url(account_id, "/emails/received")
        if email_id is not None:
            url += f"/{_segment(email_id)}"
        return url + path

    def list_received(self, account_id: str) -> list[EmailBatch]:
        data = self._request("GET", self._received(account_id))
        return [EmailBatch.model_validate(item) for item in data or []]

    def get_received_contents(self, account_id: str, email_id: str) -> EmailContents:
        data = self._request("GET", self._received(account_id, email_id, "/contents"))
        return EmailContents.model_validate(data)

    def get_received_attachment(self, account_id: str, email_id: str, attachment_id: str) -> SignedUrl:
        url = self._received(account_id, email_id, f"/attachments/{_segment(attachment_id)}")
        return SignedUrl.model_validate(self._request("GET", url))

    def patch_received(self, account_id: str, email_id: str, operations: list[PatchOperation]) -> Email:
        data = self._request(
            "PATCH", self._received(account_id, email_id), json=[op.to_wire() for op in operations]
        )
        return Email.model_validate(data)

    def mark_viewed(self, account_id: str, email_id: str) -> Email:
        return self.patch_received(
            account_id, email_id, [PatchOperation(op="replace", path="/viewed", value=True)]
        )

    def delete_received(self, account_id: str, email_id: str) -> Email:
        return Email.model_validate(self._request("DELETE", self._received(account_id, email_id)))

    def bounce_received(self, account_id: str, email_id: str) -> None:
        self._request("POST", self._received(account_id, email_id, "/bounce"))

    # ---- Sent emails ----

    def _sent(self, account_id: str, email_id: Optional[str] = None, path: str = "") -> str:
        url = self._account_url(account_id, "/emails/sent")
        if email_id is not None:
            url += f"/{_segment(email_id)}"
        return url + path

    def list_sent(self, account_id: str) -> list[EmailBatch]:
        data = self._request("GET", self._sent(account_id))
        return [EmailBatch.model_validate(item) for item in data or []]

    def get_sent_contents(self, account_id: str, email_id: str) -> EmailContents:
        data = self._request("GET", self._sent(account_id, email_id, "/contents"))
        return EmailContents.model_validate(data)

    def get_sent_attachment(self, account_id: str, email_id: str, attachment_id: str) -> SignedUrl:
        url = self._sent(account_id, email_id, f"/attachments/{_segment(attachment_id)}")
        return SignedUrl.model_validate(self._request("GET", url))

    def delete_sent(self, account_id: str, email_id: str) -> Email:
        return Email.model_validate(self._request("DELETE", self._sent(account_id, email_id)))

    def post_sent(self, account_id: str, message: OutboundMessage) -> Email:
        data = self._request("POST", self._sent(account_id), json=message.to_wire())
        logger.info("Sent email for %s (%d recipients)", account_id, len(message.to) + len(message.cc) + len(message.bcc))
        return Email.model_validate(data)

    def post_sent_attachment(self, account_id: str) -> PostSignedUrl:
        data = self._request("POST", self._sent(account_id, path="/attachments"))
        return PostSignedUrl.model_validate(data)

    # ---- Uploads ----

    def upload_attachment(
        self, account_id: str, filename: str, content: bytes, content_type: str
    ) -> EmailAttachment:
        """Store a file through a pre-signed POST and describe it as an attachment."""
        signed = self.post_sent_attachment(account_id)
        post_form(
            signed.url,
            data=dict(signed.fields),
            files={"file": (filename, content, content_type or "application/octet-stream")},
            transport=self._transport,
        )
        key = signed.fields.get("key", "")
        attachment_id = key.rsplit("/", 1)[-1]
        logger.info("Uploaded attachment %s (%d bytes)", attachment_id, len(content))
        return EmailAttachment(
            filename=filename,
            id=attachment_id,
            key=key or None,
            size=len(content),
            type=content_type or "",
        )
