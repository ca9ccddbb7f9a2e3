"""Root CLI application."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.table import Table

from webmail.cli.render import render_app
from webmail.cli.security import security_app
from webmail.core.config import load_config

console = Console()
app = typer.Typer(
    name="webmail",
    help="Webmail client: safe email rendering and a rich-text composer.",
    no_args_is_help=True,
)

app.add_typer(security_app)
app.add_typer(render_app)


@app.command()
def config() -> None:
    """Show the effective configuration (secrets masked)."""
    cfg = load_config()

    table = Table(title="Webmail Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("mail.domain", cfg.mail.domain)
    table.add_row("mail.max_upload_size", f"{cfg.mail.max_upload_size:,} bytes")
    table.add_row("mail.block_empty_paste", "yes" if cfg.mail.block_empty_paste else "no")
    table.add_row("api.base_url", cfg.api.base_url)
    table.add_row("api.token", "[green]set[/green]" if cfg.api.token else "[red]not set[/red]")
    table.add_row("api.timeout", f"{cfg.api.timeout:g}s")
    table.add_row("auth.account_id", cfg.auth.account_id or "[dim]not set[/dim]")
    table.add_row("account address", cfg.address_for(cfg.auth.account_id) if cfg.auth.account_id else "[dim]-[/dim]")
    table.add_row("log_level", cfg.log_level)

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the webmail web app."""
    import uvicorn

    cfg = load_config()
    logging.basicConfig(level=cfg.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    console.print("\n[bold]Webmail[/bold]")
    console.print(f"Starting at [cyan]http://{host}:{port}[/cyan]\n")
    uvicorn.run(
        "webmail.web.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
        log_level=cfg.log_level.lower(),
    )
