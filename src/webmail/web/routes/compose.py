"""Compose routes: editor commands, links, paste, attachments and send."""

from __future__ import annotations

import json
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError

from webmail.composer.commands import (
    COLOR_BUTTONS,
    FONT_SIZE_COMMAND,
    PARAGRAPH_BUTTONS,
    TEXT_BUTTONS,
    ColorCommand,
    FontSize,
    FormatCommand,
)
from webmail.composer.dom import EditableRegion, Selection, TextRange
from webmail.composer.editor import ClipboardEvent, RichTextComposer
from webmail.core.models import AppConfig, EmailAttachment
from webmail.mail.client import EmailsApiClient
from webmail.mail.outbound import (
    AttachmentsTooLargeError,
    MissingRecipientsError,
    assemble_outbound,
    parse_address_line,
)
from webmail.render.reply import ComposeMode, ComposeSeed, seed_compose
from webmail.web.deps import get_account_id, get_api, get_config, render

logger = logging.getLogger(__name__)

router = APIRouter()

SEND_ERROR = "Error sending email. Please try again in a few moments."
UPLOAD_ERROR = "Error uploading file. Please ensure file is below file size limit and then try again."

_API_ERRORS = (httpx.HTTPStatusError, httpx.RequestError)


def _composer(
    html: str,
    start: Optional[int],
    end: Optional[int],
    block_empty_paste: bool = True,
) -> RichTextComposer:
    """Composer over the posted editor markup with the posted selection."""
    region = EditableRegion()
    selection = Selection(region)
    composer = RichTextComposer(region, selection, block_empty_paste=block_empty_paste)
    composer.mount(html)
    if start is not None:
        end = start if end is None else end
        if end > len(region.text_content):
            raise HTTPException(status_code=400, detail="Selection is outside the editor")
        try:
            selection.add_range(TextRange(start, end))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    return composer


def _compose_page(config: AppConfig, seed: ComposeSeed, **ctx) -> str:
    return render(
        "compose.html",
        seed=seed,
        text_buttons=TEXT_BUTTONS,
        paragraph_buttons=PARAGRAPH_BUTTONS,
        color_buttons=COLOR_BUTTONS,
        font_sizes=list(FontSize),
        max_upload_size=config.mail.max_upload_size,
        **ctx,
    )


@router.get("", response_class=HTMLResponse)
def compose_page(
    reply: Optional[str] = None,
    mode: ComposeMode = ComposeMode.REPLY,
    box: str = "inbox",
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
    config: AppConfig = Depends(get_config),
):
    seed = ComposeSeed()
    error = None
    if reply:
        try:
            if box == "outbox":
                email = api.get_sent_contents(account_id, reply)
            else:
                email = api.get_received_contents(account_id, reply)
            seed = seed_compose(mode, email, config.address_for(account_id))
        except _API_ERRORS:
            logger.exception("Failed to load email %s for %s", reply, mode.value)
            error = "Error fetching email. Please try again."
    return HTMLResponse(_compose_page(config, seed, error=error))


@router.post("/format")
def format_selection(
    command: str = Form(...),
    html: str = Form(""),
    start: Optional[int] = Form(None),
    end: Optional[int] = Form(None),
    value: str = Form(""),
):
    composer = _composer(html, start, end)
    try:
        if command == FONT_SIZE_COMMAND:
            composer.apply_font_size(FontSize.parse(value))
        elif command in {c.value for c in ColorCommand}:
            composer.apply_color(ColorCommand.parse(command), value)
        else:
            composer.apply_format(FormatCommand.parse(command))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return JSONResponse({"html": composer.serialize_html()})


@router.post("/link")
def insert_link(
    html: str = Form(""),
    start: Optional[int] = Form(None),
    end: Optional[int] = Form(None),
    text: Optional[str] = Form(None),
    target: str = Form(""),
):
    composer = _composer(html, start, end)
    composer.open_link_dialog()
    if text is not None:
        composer.set_link_text(text)
    composer.set_link_target(target)
    link = composer.link
    committed = composer.commit_link()
    return JSONResponse({
        "html": composer.serialize_html(),
        "committed": committed,
        "error": link.error,
        "textError": link.text_error,
    })


@router.post("/paste")
def paste(
    html: str = Form(""),
    start: Optional[int] = Form(None),
    end: Optional[int] = Form(None),
    text: str = Form(""),
    types: list[str] = Form([]),
    config: AppConfig = Depends(get_config),
):
    composer = _composer(html, start, end, block_empty_paste=config.mail.block_empty_paste)
    data = {kind: "" for kind in types}
    if text:
        data["text/plain"] = text
    allowed = composer.paste(ClipboardEvent(data=data))
    return JSONResponse({"html": composer.serialize_html(), "blocked": not allowed})


@router.post("/attachments", response_class=HTMLResponse)
async def upload_attachment(
    file: UploadFile = File(...),
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
    config: AppConfig = Depends(get_config),
):
    content = await file.read()
    if len(content) >= config.mail.max_upload_size:
        return HTMLResponse(render("partials/alert.html", message=UPLOAD_ERROR, level="error"), status_code=413)
    try:
        attachment = api.upload_attachment(
            account_id, file.filename or "attachment", content, file.content_type or ""
        )
    except _API_ERRORS:
        logger.exception("Failed to upload %s", file.filename)
        return HTMLResponse(render("partials/alert.html", message=UPLOAD_ERROR, level="error"), status_code=502)
    return HTMLResponse(render(
        "partials/attachment.html",
        attachment=attachment,
        payload=json.dumps(attachment.to_wire()),
    ))


def _parse_attachments(values: list[str]) -> list[EmailAttachment]:
    try:
        return [EmailAttachment.model_validate_json(value) for value in values if value]
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid attachment") from exc


@router.post("/send")
def send(
    html: str = Form(""),
    subject: str = Form(""),
    to: list[str] = Form([]),
    cc: list[str] = Form([]),
    bcc: list[str] = Form([]),
    attachment: list[str] = Form([]),
    in_reply_to: Optional[str] = Form(None),
    references: list[str] = Form([]),
    api: EmailsApiClient = Depends(get_api),
    account_id: str = Depends(get_account_id),
    config: AppConfig = Depends(get_config),
):
    composer = _composer(html, None, None)
    seed = ComposeSeed(
        subject=subject,
        body=html,
        to=parse_address_line(to),
        cc=parse_address_line(cc),
        in_reply_to=in_reply_to or None,
        references=[r for r in references if r],
    )
    try:
        message = assemble_outbound(
            account_address=config.address_for(account_id),
            html=composer.serialize_html(),
            text=composer.extract_plain_text(),
            to=seed.to,
            cc=seed.cc,
            bcc=parse_address_line(bcc),
            subject=subject,
            attachments=_parse_attachments(attachment),
            max_upload_size=config.mail.max_upload_size,
            in_reply_to=seed.in_reply_to,
            references=seed.references,
        )
    except MissingRecipientsError as exc:
        return HTMLResponse(_compose_page(config, seed, recipient_message=str(exc)), status_code=422)
    except AttachmentsTooLargeError:
        return HTMLResponse(_compose_page(config, seed, error=UPLOAD_ERROR), status_code=413)

    try:
        api.post_sent(account_id, message)
    except _API_ERRORS:
        logger.exception("Failed to send email for %s", account_id)
        return HTMLResponse(_compose_page(config, seed, error=SEND_ERROR), status_code=502)
    return RedirectResponse("/outbox", status_code=303)
