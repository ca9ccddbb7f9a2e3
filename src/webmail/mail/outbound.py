"""Assemble outbound messages from compose state."""

from __future__ import annotations

from typing import Iterable, Optional

from webmail.core.models import AttachmentDescriptor, EmailAddress, EmailAttachment, OutboundMessage

RECIPIENTS_REQUIRED = "Please enter recipients."


class AttachmentsTooLargeError(ValueError):
    def __init__(self, total: int, limit: int) -> None:
        super().__init__(f"Attachments total {total} bytes; must be below {limit} bytes")
        self.total = total
        self.limit = limit


class MissingRecipientsError(ValueError):
    def __init__(self) -> None:
        super().__init__(RECIPIENTS_REQUIRED)


def parse_address_line(values: Iterable[str]) -> list[EmailAddress]:
    """Address entries typed by the user: trimmed, blanks dropped."""
    addresses = []
    for value in values:
        for part in (value or "").split(","):
            if part.strip():
                addresses.append(EmailAddress(address=part.strip(), name=""))
    return addresses


def describe_attachment(attachment: EmailAttachment) -> AttachmentDescriptor:
    return AttachmentDescriptor(
        cid=attachment.id,
        content=attachment.key or attachment.id,
        content_disposition="attachment",
        content_type=attachment.type,
        filename=attachment.filename,
        size=attachment.size,
    )


def total_attachment_size(attachments: Iterable[EmailAttachment]) -> int:
    return sum(attachment.size for attachment in attachments)


def assemble_outbound(
    account_address: str,
    html: str,
    text: str,
    to: list[EmailAddress],
    cc: Optional[list[EmailAddress]] = None,
    bcc: Optional[list[EmailAddress]] = None,
    subject: str = "",
    attachments: Optional[list[EmailAttachment]] = None,
    max_upload_size: int = 10_000_000,
    in_reply_to: Optional[str] = None,
    references: Optional[list[str]] = None,
) -> OutboundMessage:
    """Build the payload for the send call.

    Raises ``MissingRecipientsError`` when there is nobody to send to and
    ``AttachmentsTooLargeError`` when the attachments are not strictly
    smaller than ``max_upload_size`` in total.
    """
    cc = cc or []
    bcc = bcc or []
    attachments = attachments or []
    if not (to or cc or bcc):
        raise MissingRecipientsError()

    total = total_attachment_size(attachments)
    if total >= max_upload_size:
        raise AttachmentsTooLargeError(total, max_upload_size)

    own = EmailAddress(address=account_address, name="")
    return OutboundMessage(
        attachments=[describe_attachment(a) for a in attachments],
        bcc=bcc,
        cc=cc,
        from_=own,
        html=html,
        in_reply_to=in_reply_to,
        references=references or None,
        reply_to=own,
        sender=own,
        subject=(subject or "").strip() or "no subject",
        text=text or "",
        to=to,
    )
