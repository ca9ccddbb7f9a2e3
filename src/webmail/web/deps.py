"""Shared dependencies for web routes."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterator

from fastapi import Request
from jinja2 import Environment, FileSystemLoader

from webmail.core.config import load_config
from webmail.core.models import AppConfig
from webmail.mail.client import EmailsApiClient

_TEMPLATES_DIR = Path(__file__).parent.parent.parent.parent / "templates" / "web"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=True,
)


def _timestamp_filter(value: int) -> str:
    # Backend timestamps are milliseconds since the epoch
    if not value:
        return ""
    return datetime.fromtimestamp(value / 1000).strftime("%m/%d/%Y, %I:%M:%S %p")


_env.filters["timestamp"] = _timestamp_filter


def get_config() -> AppConfig:
    return load_config()


def get_api() -> Iterator[EmailsApiClient]:
    client = EmailsApiClient(get_config().api)
    try:
        yield client
    finally:
        client.close()


def get_account_id(request: Request) -> str:
    from webmail.web.security import current_account
    return current_account(request)


def render(template_name: str, **ctx) -> str:
    tpl = _env.get_template(template_name)
    return tpl.render(**ctx)
