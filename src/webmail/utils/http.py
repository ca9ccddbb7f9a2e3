"""Shared HTTP client with retries and sensible defaults."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_HEADERS = {"User-Agent": "webmail/0.1"}


def get_client(**kwargs) -> httpx.Client:
    """Return a configured httpx.Client."""
    return httpx.Client(
        timeout=kwargs.pop("timeout", _DEFAULT_TIMEOUT),
        headers={**_DEFAULT_HEADERS, **kwargs.pop("headers", {})},
        follow_redirects=True,
        **kwargs,
    )


def _transient(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return True


def post_form(url: str, data: dict, files: dict, **kwargs) -> httpx.Response:
    """POST a multipart form, retrying server errors and dropped connections.

    Client errors (an expired upload policy, for instance) are raised at once.
    """
    max_retries = kwargs.pop("max_retries", 2)
    with get_client(**kwargs) as client:
        for attempt in range(max_retries + 1):
            try:
                resp = client.post(url, data=data, files=files)
                resp.raise_for_status()
                return resp
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                if attempt == max_retries or not _transient(exc):
                    raise
                logger.warning("POST %s failed (attempt %d): %s", url, attempt + 1, exc)
    raise ValueError(f"max_retries must be >= 0, got {max_retries}")
