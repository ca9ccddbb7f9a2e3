"""Seed the composer for reply, reply-all and forward."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader
from pydantic import BaseModel, Field

from webmail.core.models import EmailAddress, EmailContents
from webmail.render.viewer import render_email_body

_TEMPLATES_DIR = Path(__file__).parent.parent.parent.parent / "templates" / "web"
_env = Environment(loader=FileSystemLoader(str(_TEMPLATES_DIR)), autoescape=True)

_REPLY_PREFIX = re.compile(r"^(RE:)?\s*", re.IGNORECASE)
_FORWARD_PREFIX = re.compile(r"^(FWD?:)?\s*", re.IGNORECASE)


class ComposeMode(str, Enum):
    REPLY = "reply"
    REPLY_ALL = "reply-all"
    FORWARD = "forward"


class ComposeSeed(BaseModel):
    """Initial state of the compose view."""

    subject: str = ""
    body: str = ""
    to: list[EmailAddress] = Field(default_factory=list)
    cc: list[EmailAddress] = Field(default_factory=list)
    in_reply_to: Optional[str] = None
    references: list[str] = Field(default_factory=list)


def reply_subject(subject: Optional[str]) -> str:
    return _REPLY_PREFIX.sub("RE: ", subject or "no subject", count=1)


def forward_subject(subject: Optional[str]) -> str:
    return _FORWARD_PREFIX.sub("FW: ", subject or "no subject", count=1)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _format_date(moment: datetime) -> str:
    return f"{moment.month}/{moment.day}/{moment.year}"


def _format_time(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"


def quote_body(email: EmailContents, sanitized_html: str) -> str:
    """Quoted copy of ``email`` placed below an empty area for the new text."""
    moment = _parse_date(email.date)
    senders = email.from_address.value
    sender = senders[0].display if senders else "unknown sender"
    tpl = _env.get_template("partials/reply_quote.html")
    return tpl.render(
        date=_format_date(moment) if moment else "unknown",
        time=_format_time(moment) if moment else "unknown",
        sender=sender,
        body=sanitized_html,
    )


def _not_own_address(own_address: str):
    own = own_address.lower()
    return lambda address: address.address.lower() != own


def seed_compose(mode: ComposeMode, email: EmailContents, own_address: str) -> ComposeSeed:
    """Subject, recipients and quoted body for answering ``email``.

    Reply goes to the reply-to list when the message names one and to the
    sender otherwise. Reply-all adds the original recipients except the
    user's own address.
    """
    # Quoted bodies keep remote images blocked
    body = quote_body(email, render_email_body(email.body_html, email.body_text))
    reply_to = email.reply_to_address.value if email.reply_to_address.display else email.from_address.value
    seed = ComposeSeed(body=body, in_reply_to=email.id, references=list(email.references))

    if mode is ComposeMode.REPLY:
        seed.subject = reply_subject(email.subject)
        seed.to = list(reply_to)
    elif mode is ComposeMode.REPLY_ALL:
        keep = _not_own_address(own_address)
        seed.subject = reply_subject(email.subject)
        if email.to_address:
            seed.to = [a for a in [*reply_to, *email.to_address.value] if keep(a)]
        else:
            seed.to = list(reply_to)
        if email.cc_address:
            seed.cc = [a for a in email.cc_address.value if keep(a)]
    else:
        seed.subject = forward_subject(email.subject)
    return seed
