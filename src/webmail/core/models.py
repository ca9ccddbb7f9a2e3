"""Pydantic models for the webmail client."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for payloads exchanged with the emails API (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Addresses ---

class EmailAddress(ApiModel):
    address: str
    name: str = ""
    group: Optional[list[str]] = None

    @property
    def display(self) -> str:
        return f"{self.name} <{self.address}>" if self.name else self.address


class EmailAddressParsed(ApiModel):
    html: str = ""
    text: str = ""
    value: list[EmailAddress] = Field(default_factory=list)


class EmailAddressReplyTo(ApiModel):
    display: str = ""
    value: list[EmailAddress] = Field(default_factory=list)


# --- Attachments ---

class EmailAttachment(ApiModel):
    filename: str
    id: str
    size: int
    type: str
    key: Optional[str] = None


class AttachmentDescriptor(ApiModel):
    """Attachment entry of an outbound message."""

    cid: str
    content: Any
    content_disposition: str = "attachment"
    content_type: str
    filename: str
    size: int


# --- Emails ---

class Email(ApiModel):
    attachments: Optional[list[EmailAttachment]] = None
    bcc: Optional[list[str]] = None
    cc: Optional[list[str]] = None
    from_: str = Field(alias="from")
    subject: str = ""
    timestamp: int = 0
    to: list[str] = Field(default_factory=list)
    viewed: bool = False


class EmailBatch(ApiModel):
    account_id: str = ""
    data: Email
    id: str


class EmailContents(ApiModel):
    attachments: Optional[list[EmailAttachment]] = None
    bcc_address: Optional[EmailAddressParsed] = None
    body_html: Optional[str] = None
    body_text: Optional[str] = None
    cc_address: Optional[EmailAddressParsed] = None
    date: Optional[str] = None
    from_address: EmailAddressParsed = Field(default_factory=EmailAddressParsed)
    headers: dict[str, str] = Field(default_factory=dict)
    id: str = ""
    in_reply_to: Optional[str] = None
    references: list[str] = Field(default_factory=list)
    reply_to_address: EmailAddressReplyTo = Field(default_factory=EmailAddressReplyTo)
    subject: Optional[str] = None
    to_address: Optional[EmailAddressParsed] = None


class OutboundMessage(ApiModel):
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)
    bcc: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] = Field(default_factory=list)
    from_: EmailAddress = Field(alias="from")
    headers: Optional[dict[str, str]] = None
    html: str = ""
    in_reply_to: Optional[str] = None
    references: Optional[list[str]] = None
    reply_to: EmailAddress
    sender: EmailAddress
    subject: str = "no subject"
    text: str = ""
    to: list[EmailAddress] = Field(default_factory=list)


# --- Accounts ---

class Account(ApiModel):
    id: Optional[str] = None
    name: str = ""
    forward_targets: list[str] = Field(default_factory=list)
    bounce_senders: list[str] = Field(default_factory=list)


class PatchOperation(ApiModel):
    op: str
    path: str
    value: Any = None

    def to_wire(self) -> dict:
        data = {"op": self.op, "path": self.path}
        if self.op != "remove":
            data["value"] = self.value
        return data


# --- Signed URLs ---

class SignedUrl(ApiModel):
    url: str


class PostSignedUrl(ApiModel):
    url: str
    fields: dict[str, str] = Field(default_factory=dict)


# --- Rendering ---

class SanitizationPolicy(BaseModel):
    """Settings for one sanitization pass over an email body."""

    model_config = ConfigDict(frozen=True)

    allow_images: bool = False
    forbidden_tags: frozenset[str] = frozenset()

    @classmethod
    def for_images(cls, allow_images: bool) -> "SanitizationPolicy":
        # Embedded svg can smuggle remote references past the attribute rules
        return cls(
            allow_images=allow_images,
            forbidden_tags=frozenset() if allow_images else frozenset({"svg"}),
        )

    def toggled(self) -> "SanitizationPolicy":
        return SanitizationPolicy.for_images(not self.allow_images)


# --- Composer ---

_absolute_url = TypeAdapter(AnyUrl)


def is_absolute_url(value: str) -> bool:
    """True when ``value`` parses as an absolute URL (scheme included)."""
    if not value or value != value.strip():
        return False
    try:
        _absolute_url.validate_python(value)
    except ValidationError:
        return False
    return True


class LinkInsertion(BaseModel):
    """Pending state of the link dialog."""

    text: str = ""
    target: str = ""

    @property
    def error(self) -> Optional[str]:
        return None if is_absolute_url(self.target) else "Invalid URL"

    @property
    def text_error(self) -> Optional[str]:
        return None if self.text else "Link text is required"

    @property
    def is_valid(self) -> bool:
        return bool(self.text) and self.error is None


# --- Config models ---

class MailConfig(BaseModel):
    domain: str = "localhost"
    max_upload_size: int = 10_000_000
    block_empty_paste: bool = True


class ApiConfig(BaseModel):
    base_url: str = "http://localhost:3000/v1"
    token: str = ""
    timeout: float = 30.0


class AuthConfig(BaseModel):
    account_id: str = ""
    password_hash: str = ""
    password: str = ""
    secret_key: str = ""


class AppConfig(BaseModel):
    mail: MailConfig = Field(default_factory=MailConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log_level: str = "info"

    def address_for(self, account_id: str) -> str:
        return f"{account_id}@{self.mail.domain}"
