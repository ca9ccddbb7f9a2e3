"""Inbox and outbox routes."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, RedirectResponse

from webmail.core.models import EmailBatch, EmailContents
from webmail.mail.client import EmailsApiClient
from webmail.render.viewer import ImageVisibility, render_email_body
from webmail.web.deps import get_account_id, get_api, render

logger = logging.getLogger(__name__)

router = APIRouter()

FETCH_EMAILS_ERROR = "Error fetching emails. Please reload the page to try again."
FETCH_EMAIL_ERROR = "Error fetching email. Please try again."
DELETE_ERROR = "Error deleting email. Please refresh and try again."
BOUNCE_ERROR = "Error bouncing email. Please refresh and try again."
ATTACHMENT_ERROR = "Error downloading the attachment. Please try again."

_API_ERRORS = (httpx.HTTPStatusError, httpx.RequestError)


def _newest_first(emails: list[EmailBatch]) -> list[EmailBatch]:
    return sorted(emails, key=lambda e: e.data.timestamp, reverse=True)


def _mailbox_page(
    box: str,
    api: EmailsApiClient,
    account_id: str,
    email_id: Optional[str],
    images: Optional[str],
) -> HTMLResponse:
    received = box == "inbox"
    visibility = ImageVisibility.parse(images)
    try:
        batches = api.list_received(account_id) if received else api.list_sent(account_id)
    except _API_ERRORS:
        logger.exception("Failed to list %s for %s", box, account_id)
        return HTMLResponse(
            render("mailbox.html", box=box, emails=[], selected=None, error=FETCH_EMAILS_ERROR),
            status_code=502,
        )

    emails = _newest_first(batches)
    ids = [e.id for e in emails]
    selected_id = email_id if email_id in ids else (ids[0] if ids else None)

    contents: Optional[EmailContents] = None
    body = ""
    error = None
    if selected_id is not None:
        try:
            if received:
                contents = api.get_received_contents(account_id, selected_id)
                summary = next(e for e in emails if e.id == selected_id)
                if not summary.data.viewed:
                    api.mark_viewed(account_id, selected_id)
                    summary.data.viewed = True
            else:
                contents = api.get_sent_contents(account_id, selected_id)
        except _API_ERRORS:
            logger.exception("Failed to load %s email %s", box, selected_id)
            error = FETCH_EMAIL_ERROR
        if contents is not None:
            body = render_email_body(contents.body_html, contents.body_text, visibility.allow_images)

    return HTMLResponse(render(
        "mailbox.html",
        box=box,
        emails=emails,
        selected=selected_id,
        email=contents,
        body=body,
        visibility=visibility,
        error=error,
    ))


def _alert(message: str, status_code: int = 502) -> HTMLResponse:
    return HTMLResponse(render("partials/alert.html", message=message, level="error"), status_code=status_code)


@router.get("/")
async def home():
    return RedirectResponse("/inbox", status_code=302)


@router.get("/inbox", response_class=HTMLResponse)
def inbox(
    email: Optional[str] = None,
    images: Optional[str] = None,
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    return _mailbox_page("inbox", api, account_id, email, images)


@router.get("/outbox", response_class=HTMLResponse)
def outbox(
    email: Optional[str] = None,
    images: Optional[str] = None,
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    return _mailbox_page("outbox", api, account_id, email, images)


@router.get("/{box}/{email_id}/attachments/{attachment_id}")
def download_attachment(
    box: str,
    email_id: str,
    attachment_id: str,
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    if box not in ("inbox", "outbox"):
        return _alert("Not found", status_code=404)
    try:
        if box == "inbox":
            signed = api.get_received_attachment(account_id, email_id, attachment_id)
        else:
            signed = api.get_sent_attachment(account_id, email_id, attachment_id)
    except _API_ERRORS:
        logger.exception("Failed to sign attachment %s of %s", attachment_id, email_id)
        return _alert(ATTACHMENT_ERROR)
    return RedirectResponse(signed.url, status_code=302)


@router.post("/inbox/{email_id}/delete")
def delete_received(
    email_id: str,
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    try:
        api.delete_received(account_id, email_id)
    except _API_ERRORS:
        logger.exception("Failed to delete received email %s", email_id)
        return _alert(DELETE_ERROR)
    return RedirectResponse("/inbox", status_code=303)


@router.post("/outbox/{email_id}/delete")
def delete_sent(
    email_id: str,
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    try:
        api.delete_sent(account_id, email_id)
    except _API_ERRORS:
        logger.exception("Failed to delete sent email %s", email_id)
        return _alert(DELETE_ERROR)
    return RedirectResponse("/outbox", status_code=303)


@router.post("/inbox/{email_id}/bounce")
def bounce(
    email_id: str,
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
):
    try:
        api.bounce_received(account_id, email_id)
    except _API_ERRORS:
        logger.exception("Failed to bounce email %s", email_id)
        return _alert(BOUNCE_ERROR)
    return RedirectResponse("/inbox", status_code=303)
