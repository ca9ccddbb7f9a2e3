"""Rich text composer: formatting, link dialog, paste gate and extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from webmail.composer.commands import (
    FONT_SIZE_COMMAND,
    INSERT_TEXT_COMMAND,
    ColorCommand,
    CommandHost,
    FontSize,
    FormatCommand,
    native_name,
)
from webmail.composer.dom import EditableRegion, Selection, TextRange
from webmail.composer.executor import SoupCommandHost
from webmail.core.models import LinkInsertion

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


class DialogState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class ClipboardEvent:
    """A paste as delivered by the browser, keyed by MIME type."""

    data: dict[str, str] = field(default_factory=dict)
    default_prevented: bool = False

    def get_data(self, kind: str) -> str:
        if kind == "text":
            kind = "text/plain"
        return self.data.get(kind, "")

    def prevent_default(self) -> None:
        self.default_prevented = True


class RichTextComposer:
    """Editing session over one editable region.

    ``selection`` is None when the host offers no selection API; formatting
    then has nothing to act on and plain text extraction falls back to the
    region's raw text.
    """

    def __init__(
        self,
        region: Optional[EditableRegion] = None,
        selection: Optional[Selection] = None,
        host: Optional[CommandHost] = None,
        block_empty_paste: bool = True,
    ) -> None:
        self.region = region or EditableRegion()
        self.selection = selection
        self.host = host or SoupCommandHost(self.region, selection)
        self.block_empty_paste = block_empty_paste
        self.dialog = DialogState.CLOSED
        self.link = LinkInsertion()
        self._link_range: Optional[TextRange] = None
        self._seeded = False

    def mount(self, initial_body: Optional[str] = None) -> EditableRegion:
        self.region.mount()
        self.seed_initial_body(initial_body)
        return self.region

    def seed_initial_body(self, html: Optional[str]) -> None:
        """Inject ``html`` the first time only; later calls are ignored."""
        if self._seeded or not self.region.mounted:
            return
        self._seeded = True
        if html:
            self.region.inner_html = html

    # ---- Formatting ----

    def apply_format(self, command: FormatCommand) -> None:
        self.host.exec_command(native_name(command))

    def apply_color(self, command: ColorCommand, value: str) -> None:
        if not _HEX_COLOR.match(value or ""):
            logger.debug("Ignoring color %r for %s", value, command.value)
            return
        self.host.exec_command(native_name(command), False, value)

    def apply_font_size(self, size: FontSize) -> None:
        self.host.exec_command(FONT_SIZE_COMMAND, False, size.value)

    # ---- Link dialog ----

    @property
    def link_dialog_open(self) -> bool:
        return self.dialog is DialogState.OPEN

    def open_link_dialog(self) -> None:
        captured = None
        if self.selection is not None and self.selection.range_count:
            captured = self.selection.get_range_at(0)
        self._link_range = captured
        self.link = LinkInsertion(text=captured.to_string(self.region) if captured else "")
        self.dialog = DialogState.OPEN

    def set_link_text(self, text: str) -> None:
        self.link = self.link.model_copy(update={"text": text})

    def set_link_target(self, target: str) -> None:
        self.link = self.link.model_copy(update={"target": target})

    def commit_link(self) -> bool:
        """Insert the pending link; returns False (and changes nothing) when invalid."""
        if not self.link_dialog_open or not self.link.is_valid:
            return False
        link, captured = self.link, self._link_range
        self._close_dialog()

        anchor = self.region.create_element("a", text=link.text, href=link.target)
        if captured is not None:
            captured.delete_contents(self.region)
            captured.insert_node(self.region, anchor)
        else:
            self.region.append(anchor)
        return True

    def cancel_link_dialog(self) -> None:
        self._close_dialog()
        self.link = LinkInsertion()

    def _close_dialog(self) -> None:
        self.dialog = DialogState.CLOSED
        self._link_range = None

    # ---- Paste ----

    def handle_paste(self, event: ClipboardEvent) -> None:
        if not event.get_data("text") and self.block_empty_paste:
            logger.debug("Blocked paste without plain text (%s)", ", ".join(event.data) or "empty")
            event.prevent_default()

    def paste(self, event: ClipboardEvent) -> bool:
        """Run the paste gate, then insert the plain text unless it was blocked."""
        self.handle_paste(event)
        if event.default_prevented:
            return False
        text = event.get_data("text")
        if text:
            self.host.exec_command(INSERT_TEXT_COMMAND, False, text)
        return True

    # ---- Extraction ----

    def extract_plain_text(self) -> str:
        if not self.region.mounted:
            return ""
        if self.selection is None:
            return self.region.text_content
        self.selection.select_all_children()
        text = self.selection.to_string()
        self.selection.remove_all_ranges()
        return text

    def serialize_html(self) -> str:
        return self.region.inner_html
