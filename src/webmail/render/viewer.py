"""Render untrusted email bodies for display."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from markupsafe import escape

from webmail.core.models import SanitizationPolicy
from webmail.render.css import strip_remote_declarations, strip_remote_rules
from webmail.render.sanitize import HookPoint, SanitizedNode, Sanitizer, scoped_hooks

logger = logging.getLogger(__name__)

# Attributes that make the browser fetch a URL on render
HTTP_LEAK_ATTRIBUTES = ("action", "background", "poster", "src")

_INLINE_IMAGE = re.compile(r"^data:image/", re.IGNORECASE)

_SRCSET_URL = re.compile(r"[\s,]*(\S+)")

_default_sanitizer: Optional[Sanitizer] = None


def get_sanitizer() -> Sanitizer:
    global _default_sanitizer
    if _default_sanitizer is None:
        _default_sanitizer = Sanitizer()
    return _default_sanitizer


def srcset_urls(srcset: str) -> list[str]:
    """Image candidate URLs of a ``srcset`` value.

    A URL runs to the next whitespace, so the commas inside ``data:`` URIs
    do not split a candidate. Descriptors are skipped up to the next comma.
    """
    urls = []
    position = 0
    while True:
        match = _SRCSET_URL.match(srcset, position)
        if not match:
            return urls
        url = match.group(1)
        position = match.end()
        if url.endswith(","):
            urls.append(url.rstrip(","))
            continue
        urls.append(url)
        comma = srcset.find(",", position)
        if comma == -1:
            return urls
        position = comma + 1


# ---- Hooks ----

def strip_style_element(node: SanitizedNode) -> None:
    if node.tag_name == "style" and node.text:
        node.text = strip_remote_rules(node.text)


def block_http_leaks(node: SanitizedNode) -> None:
    for name in HTTP_LEAK_ATTRIBUTES:
        value = node.get_attribute(name)
        if value is not None and not _INLINE_IMAGE.match(value):
            node.remove_attribute(name)

    srcset = node.get_attribute("srcset")
    if srcset is not None and not all(_INLINE_IMAGE.match(url) for url in srcset_urls(srcset)):
        node.remove_attribute("srcset")

    style = node.get_attribute("style")
    if style is not None:
        filtered = strip_remote_declarations(style)
        if filtered:
            node.set_attribute("style", filtered)
        else:
            node.remove_attribute("style")


def open_links_in_new_context(node: SanitizedNode) -> None:
    if node.supports_target:
        node.set_attribute("target", "_blank")
    elif not node.has_attribute("target") and (node.has_attribute("href") or node.has_attribute("xlink:href")):
        node.set_attribute("xlink:show", "new")


def hooks_for(policy: SanitizationPolicy) -> list[tuple[HookPoint, object]]:
    hooks = [(HookPoint.AFTER_SANITIZE_ATTRIBUTES, open_links_in_new_context)]
    if not policy.allow_images:
        hooks = [
            (HookPoint.UPON_SANITIZE_ELEMENT, strip_style_element),
            (HookPoint.AFTER_SANITIZE_ATTRIBUTES, block_http_leaks),
            *hooks,
        ]
    return hooks


# ---- Rendering ----

def sanitize_body(markup: str, policy: SanitizationPolicy, sanitizer: Optional[Sanitizer] = None) -> str:
    sanitizer = sanitizer or get_sanitizer()
    with scoped_hooks(sanitizer, hooks_for(policy)):
        return sanitizer.sanitize(markup, forbid_tags=policy.forbidden_tags)


def render_email_body(
    body_html: Optional[str],
    body_text: Optional[str],
    allow_images: bool = False,
    sanitizer: Optional[Sanitizer] = None,
) -> str:
    """Sanitized markup for an email, preferring the HTML part.

    Remote resources are blocked unless ``allow_images`` is set. Links
    always open in a new browsing context. If sanitizing fails the plain
    text part is shown escaped instead.
    """
    policy = SanitizationPolicy.for_images(allow_images)
    try:
        return sanitize_body(body_html or body_text or "", policy, sanitizer)
    except Exception:
        logger.exception("Failed to sanitize email body")
        return str(escape(body_text or ""))


# ---- Image visibility ----

class ImageVisibility(str, Enum):
    HIDDEN = "hidden"
    SHOWN = "shown"

    @property
    def allow_images(self) -> bool:
        return self is ImageVisibility.SHOWN

    @property
    def toggle_label(self) -> str:
        return "Hide images" if self.allow_images else "Show images"

    def toggled(self) -> "ImageVisibility":
        return ImageVisibility.HIDDEN if self.allow_images else ImageVisibility.SHOWN

    @classmethod
    def parse(cls, value: Optional[str]) -> "ImageVisibility":
        # Anything but an explicit "shown" starts hidden
        return cls.SHOWN if value == cls.SHOWN.value else cls.HIDDEN
