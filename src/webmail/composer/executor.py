"""Server-side implementation of the native editing commands."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import tinycss2
from bs4 import NavigableString, Tag

from webmail.composer.dom import BLOCK_TAGS, EditableRegion, Selection, TextRange

logger = logging.getLogger(__name__)

_INLINE_TAGS = {
    "bold": "b",
    "italic": "i",
    "underline": "u",
    "strikeThrough": "strike",
    "subscript": "sub",
    "superscript": "sup",
}

_ALIGNMENTS = {"justifyLeft": "left", "justifyCenter": "center", "justifyRight": "right"}

_LISTS = {"insertOrderedList": "ol", "insertUnorderedList": "ul"}

# Inline formatting removed by removeFormat; links are kept
_FORMATTING_TAGS = frozenset({
    "b", "strong", "i", "em", "u", "strike", "s", "sub", "sup", "font", "span",
    "big", "small", "tt", "code", "mark",
})

_FONT_SIZES = frozenset("1234567")


def _parse_style(style: str) -> dict[str, str]:
    declarations = {}
    for decl in tinycss2.parse_declaration_list(style, skip_comments=True, skip_whitespace=True):
        if decl.type != "declaration":
            continue
        name = decl.name if decl.name.startswith("--") else decl.lower_name
        value = tinycss2.serialize(decl.value).strip()
        declarations[name] = f"{value} !important" if decl.important else value
    return declarations


def set_style_property(tag: Tag, name: str, value: str) -> None:
    declarations = _parse_style(tag.get("style", ""))
    declarations[name] = value
    tag["style"] = " ".join(f"{k}: {v};" for k, v in declarations.items())


class SoupCommandHost:
    """Executes execCommand-style commands against an ``EditableRegion``.

    Commands act on the selection's first range. Formatting wraps whole text
    nodes inside the range; toggling off unwraps the enclosing element.
    """

    def __init__(self, region: EditableRegion, selection: Optional[Selection] = None) -> None:
        self.region = region
        self.selection = selection
        self._handlers: dict[str, Callable[[TextRange, Optional[str]], None]] = {
            **{name: self._toggle_inline for name in _INLINE_TAGS},
            **{name: self._justify for name in _ALIGNMENTS},
            **{name: self._toggle_list for name in _LISTS},
            "indent": self._indent,
            "outdent": self._outdent,
            "unlink": self._unlink,
            "removeFormat": self._remove_format,
            "foreColor": self._fore_color,
            "backColor": self._back_color,
            "fontSize": self._font_size,
            "insertText": self._insert_text,
        }
        self._command: Optional[str] = None

    def exec_command(self, name: str, show_ui: bool = False, value: Optional[str] = None) -> bool:
        handler = self._handlers.get(name)
        if handler is None or not self.region.mounted:
            return False
        if self.selection is None or not self.selection.range_count:
            return False
        if name == "fontSize" and value not in _FONT_SIZES:
            return False
        self._command = name
        try:
            handler(self.selection.get_range_at(0), value)
        finally:
            self._command = None
        logger.debug("Executed %s", name)
        return True

    # ---- Helpers ----

    def _enclosing(self, node, names) -> Optional[Tag]:
        for parent in node.parents:
            if parent is self.region.root:
                return None
            if parent.name in names:
                return parent
        return None

    def _wrap_each(self, nodes: list[NavigableString], name: str, **attrs) -> None:
        for node in nodes:
            node.wrap(self.region.create_element(name, **attrs))

    def _top_level(self, node) -> Tag:
        while node.parent is not self.region.root:
            node = node.parent
        return node

    def _blocks(self, nodes: list[NavigableString]) -> list[Tag]:
        """Block elements holding ``nodes``; loose inline runs get a new div."""
        blocks: list[Tag] = []
        pending_run: list = []

        def flush() -> None:
            if pending_run:
                div = self.region.create_element("div")
                pending_run[0].insert_before(div)
                for item in pending_run:
                    div.append(item.extract())
                blocks.append(div)
                pending_run.clear()

        for node in nodes:
            block = self._enclosing(node, BLOCK_TAGS)
            if block is not None:
                flush()
                if not any(block is b for b in blocks):
                    blocks.append(block)
                continue
            top = self._top_level(node)
            if any(top is item for item in pending_run):
                continue
            if pending_run and pending_run[-1].next_sibling is not top:
                flush()
            pending_run.append(top)
        flush()
        return blocks

    def _distinct(self, tags) -> list[Tag]:
        unique: list[Tag] = []
        for tag in tags:
            if tag is not None and not any(tag is seen for seen in unique):
                unique.append(tag)
        return unique

    # ---- Inline formatting ----

    def _toggle_inline(self, selected: TextRange, value: Optional[str]) -> None:
        name = _INLINE_TAGS[self._command]
        nodes = selected.text_nodes(self.region)
        if not nodes:
            return
        wrappers = [self._enclosing(node, (name,)) for node in nodes]
        if all(wrapper is not None for wrapper in wrappers):
            for wrapper in self._distinct(wrappers):
                wrapper.unwrap()
        else:
            self._wrap_each([n for n, w in zip(nodes, wrappers) if w is None], name)

    def _fore_color(self, selected: TextRange, value: Optional[str]) -> None:
        self._wrap_each(selected.text_nodes(self.region), "font", color=value or "")

    def _back_color(self, selected: TextRange, value: Optional[str]) -> None:
        self._wrap_each(selected.text_nodes(self.region), "span", style=f"background-color: {value};")

    def _font_size(self, selected: TextRange, value: Optional[str]) -> None:
        self._wrap_each(selected.text_nodes(self.region), "font", size=value)

    def _unlink(self, selected: TextRange, value: Optional[str]) -> None:
        nodes = selected.text_nodes(self.region)
        for anchor in self._distinct(self._enclosing(node, ("a",)) for node in nodes):
            anchor.unwrap()

    def _remove_format(self, selected: TextRange, value: Optional[str]) -> None:
        for node in selected.text_nodes(self.region):
            wrapper = self._enclosing(node, _FORMATTING_TAGS)
            while wrapper is not None:
                wrapper.unwrap()
                wrapper = self._enclosing(node, _FORMATTING_TAGS)

    # ---- Paragraph formatting ----

    def _justify(self, selected: TextRange, value: Optional[str]) -> None:
        alignment = _ALIGNMENTS[self._command]
        for block in self._blocks(selected.text_nodes(self.region)):
            set_style_property(block, "text-align", alignment)

    def _indent(self, selected: TextRange, value: Optional[str]) -> None:
        for block in self._blocks(selected.text_nodes(self.region)):
            block.wrap(self.region.create_element(
                "blockquote", style="margin: 0 0 0 40px; border: none; padding: 0px;"
            ))

    def _outdent(self, selected: TextRange, value: Optional[str]) -> None:
        nodes = selected.text_nodes(self.region)
        for quote in self._distinct(self._enclosing(node, ("blockquote",)) for node in nodes):
            quote.unwrap()

    def _toggle_list(self, selected: TextRange, value: Optional[str]) -> None:
        list_name = _LISTS[self._command]
        nodes = selected.text_nodes(self.region)
        if not nodes:
            return
        items = [self._enclosing(node, ("li",)) for node in nodes]
        if all(item is not None and item.parent.name == list_name for item in items):
            for item in self._distinct(items):
                item.name = "div"
            for container in self._distinct(item.parent for item in items):
                container.unwrap()
            return

        blocks = self._blocks(nodes)
        if all(block.name == "li" for block in blocks):
            # Items of the other list kind switch kind in place
            for container in self._distinct(block.parent for block in blocks):
                container.name = list_name
            return
        container = self.region.create_element(list_name)
        blocks[0].insert_before(container)
        for block in blocks:
            item = self.region.create_element("li")
            if block.name in ("div", "p") and not block.attrs:
                for child in list(block.contents):
                    item.append(child.extract())
                block.decompose()
            else:
                item.append(block.extract())
            container.append(item)

    # ---- Text ----

    def _insert_text(self, selected: TextRange, value: Optional[str]) -> None:
        text = value or ""
        selected.delete_contents(self.region)
        if text:
            selected.insert_node(self.region, NavigableString(text))
        self.selection.collapse(selected.start + len(text))
