"""Account settings routes."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse

from webmail.core.models import Account
from webmail.mail.accounts import clean_bounce_rules, diff_account, format_rule
from webmail.mail.client import EmailsApiClient
from webmail.mail.outbound import parse_address_line
from webmail.web.deps import get_account_id, get_api, render

logger = logging.getLogger(__name__)

router = APIRouter()

FETCH_ERROR = "Error fetching account settings. Please reload the page to try again."
SAVE_ERROR = "Error saving account settings. Please refresh the page and try again."

_API_ERRORS = (httpx.HTTPStatusError, httpx.RequestError)


def _page(account, **ctx) -> str:
    return render("settings.html", account=account, format_rule=format_rule, **ctx)


@router.get("", response_class=HTMLResponse)
def settings_page(
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    try:
        account = api.get_account(account_id)
    except _API_ERRORS:
        logger.exception("Failed to load account %s", account_id)
        return HTMLResponse(_page(None, error=FETCH_ERROR), status_code=502)
    return HTMLResponse(_page(account))


@router.post("", response_class=HTMLResponse)
def save_settings(
    name: str = Form(""),
    forward_targets: list[str] = Form([]),
    bounce_senders: list[str] = Form([]),
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    try:
        current = api.get_account(account_id)
        updated = Account(
            id=account_id,
            name=name,
            forward_targets=[a.address for a in parse_address_line(forward_targets)],
            bounce_senders=clean_bounce_rules(bounce_senders),
        )
        operations = diff_account(current, updated)
        if operations:
            api.patch_account(account_id, operations)
            logger.info("Saved %d account setting change(s) for %s", len(operations), account_id)
    except _API_ERRORS:
        logger.exception("Failed to save account %s", account_id)
        return HTMLResponse(
            render("partials/alert.html", message=SAVE_ERROR, level="error"), status_code=502
        )
    return HTMLResponse(_page(updated, saved=True))
