"""Configuration loader: YAML files + environment variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from webmail.core.models import ApiConfig, AppConfig, AuthConfig, MailConfig


def _find_project_root() -> Path:
    """Walk up from cwd to find a directory containing pyproject.toml."""
    cwd = Path.cwd()
    for p in [cwd, *cwd.parents]:
        if (p / "pyproject.toml").exists():
            return p
    return cwd


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load configuration from YAML + environment variables.

    Priority: env vars > .env file > YAML defaults.
    """
    root = _find_project_root()
    load_dotenv(root / ".env")

    yaml_path = Path(config_path) if config_path else root / "config" / "default.yaml"
    yaml_data: dict = {}
    if yaml_path.exists():
        with open(yaml_path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # Mail settings
    mail_data = yaml_data.get("mail", {})
    mail = MailConfig(
        domain=os.getenv("WEBMAIL_DOMAIN", mail_data.get("domain", "localhost")),
        max_upload_size=int(os.getenv("WEBMAIL_MAX_UPLOAD_SIZE", mail_data.get("max_upload_size", 10_000_000))),
        block_empty_paste=_env_bool("WEBMAIL_BLOCK_EMPTY_PASTE", bool(mail_data.get("block_empty_paste", True))),
    )

    # Emails API with env overrides
    api_data = yaml_data.get("api", {})
    api = ApiConfig(
        base_url=os.getenv("WEBMAIL_API_BASE_URL", api_data.get("base_url", "http://localhost:3000/v1")),
        token=os.getenv("WEBMAIL_API_TOKEN", api_data.get("token", "")),
        timeout=float(api_data.get("timeout", 30.0)),
    )

    # Auth is env-only for secrets
    auth_data = yaml_data.get("auth", {})
    auth = AuthConfig(
        account_id=os.getenv("WEBMAIL_ACCOUNT_ID", auth_data.get("account_id", "")),
        password_hash=os.getenv("WEBMAIL_PASSWORD_HASH", ""),
        password=os.getenv("WEBMAIL_PASSWORD", ""),
        secret_key=os.getenv("WEBMAIL_SECRET_KEY", ""),
    )

    log_level = os.getenv("WEBMAIL_LOG_LEVEL", yaml_data.get("log_level", "info"))

    return AppConfig(mail=mail, api=api, auth=auth, log_level=log_level)
