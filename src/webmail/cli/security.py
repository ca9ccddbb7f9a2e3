"""Security CLI commands: set-password, check-auth."""

from __future__ import annotations

import os

import typer
from rich.console import Console

from webmail.web.security import hash_password

console = Console()
security_app = typer.Typer(name="security", help="Security and authentication management.")


@security_app.command("set-password")
def set_password() -> None:
    """Generate a bcrypt hash for a password."""
    password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)
    hashed = hash_password(password)
    console.print(f"\n[bold]Bcrypt hash:[/bold]\n  {hashed}")
    console.print("\n[dim]Set this as WEBMAIL_PASSWORD_HASH in your environment,[/dim]")
    console.print("[dim]or use WEBMAIL_PASSWORD for automatic runtime hashing.[/dim]")


@security_app.command("check-auth")
def check_auth() -> None:
    """Verify auth env vars are configured."""
    console.print("\n[bold]Auth Configuration Check[/bold]\n")

    secret_key = os.environ.get("WEBMAIL_SECRET_KEY", "")
    password_hash = os.environ.get("WEBMAIL_PASSWORD_HASH", "")
    password = os.environ.get("WEBMAIL_PASSWORD", "")
    account_id = os.environ.get("WEBMAIL_ACCOUNT_ID", "")

    if secret_key:
        console.print("  WEBMAIL_SECRET_KEY     [green]set[/green]")
    else:
        console.print("  WEBMAIL_SECRET_KEY     [red]not set[/red] (random key used per restart)")

    if password_hash:
        console.print("  WEBMAIL_PASSWORD_HASH  [green]set[/green]")
    elif password:
        console.print("  WEBMAIL_PASSWORD_HASH  [yellow]not set[/yellow] (using WEBMAIL_PASSWORD fallback)")
    else:
        console.print("  WEBMAIL_PASSWORD_HASH  [red]not set[/red]")

    if account_id:
        console.print(f"  WEBMAIL_ACCOUNT_ID     [green]{account_id}[/green]")
    else:
        console.print("  WEBMAIL_ACCOUNT_ID     [red]not set[/red]")

    if not password_hash and not password:
        console.print("\n  [red]Auth is disabled![/red] Set WEBMAIL_PASSWORD_HASH or WEBMAIL_PASSWORD.")
    else:
        console.print("\n  [green]Auth is enabled.[/green]")
