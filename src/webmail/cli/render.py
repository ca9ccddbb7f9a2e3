"""Render saved emails from the command line."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from webmail.core.models import EmailContents
from webmail.render.viewer import render_email_body

console = Console()
render_app = typer.Typer(name="render", help="Sanitize email bodies for display.")


def _load_body(path: Path) -> tuple[str, str]:
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() != ".json":
        return raw, ""
    contents = EmailContents.model_validate(json.loads(raw))
    return contents.body_html or "", contents.body_text or ""


@render_app.command("body")
def render_body(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Email contents JSON or raw HTML file"),
    show_images: bool = typer.Option(False, "--show-images", help="Keep remote images and styles"),
) -> None:
    """Print the sanitized markup of an email body."""
    try:
        body_html, body_text = _load_body(file)
    except (json.JSONDecodeError, ValidationError) as exc:
        console.print(f"[red]Could not read email:[/red] {exc}")
        raise typer.Exit(1)

    rendered = render_email_body(body_html, body_text, allow_images=show_images)
    console.print(rendered, markup=False, highlight=False, soft_wrap=True)
