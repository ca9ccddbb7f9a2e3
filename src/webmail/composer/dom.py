"""Editable region, ranges and selection over a BeautifulSoup tree.

Ranges are immutable snapshots expressed as offsets into the region's text
content, so a captured range never aliases live tree nodes. Operations that
need node boundaries split text nodes at those offsets first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "center", "dd", "div", "dl",
    "dt", "fieldset", "figure", "footer", "form", "h1", "h2", "h3", "h4",
    "h5", "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre",
    "section", "table", "tbody", "td", "th", "thead", "tr", "ul",
})

_WHITESPACE = re.compile(r"\s+")


def _text_nodes(root: Tag) -> Iterator[NavigableString]:
    for node in root.descendants:
        if isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
            yield node


def _text_spans(root: Tag) -> Iterator[tuple[NavigableString, int, int]]:
    pos = 0
    for node in _text_nodes(root):
        end = pos + len(node)
        yield node, pos, end
        pos = end


def _within(node, ancestor: Tag) -> bool:
    return any(parent is ancestor for parent in node.parents)


def _split_text(root: Tag, offset: int) -> None:
    """Make ``offset`` fall on a text node boundary."""
    for node, start, end in _text_spans(root):
        if start < offset < end:
            cut = offset - start
            left = NavigableString(str(node)[:cut])
            right = NavigableString(str(node)[cut:])
            node.replace_with(left)
            left.insert_after(right)
            return


def _insert_at(root: Tag, offset: int, new_node) -> None:
    spans = list(_text_spans(root))
    # An empty marker left by a deletion pins the exact position
    for node, start, end in spans:
        if start == end == offset:
            node.insert_before(new_node)
            return
    for node, start, end in spans:
        if offset == start:
            node.insert_before(new_node)
            return
        if offset == end:
            node.insert_after(new_node)
            return
    root.append(new_node)


class EditableRegion:
    """The subtree the composer edits; empty and detached until mounted."""

    def __init__(self) -> None:
        self._soup = BeautifulSoup("", "html.parser")
        self.root: Optional[Tag] = None

    @property
    def mounted(self) -> bool:
        return self.root is not None

    def mount(self) -> None:
        if self.root is None:
            self.root = self._soup.new_tag("div")
            self._soup.append(self.root)

    def unmount(self) -> None:
        if self.root is not None:
            self.root.decompose()
            self.root = None

    @property
    def inner_html(self) -> str:
        return self.root.decode_contents() if self.root is not None else ""

    @inner_html.setter
    def inner_html(self, markup: str) -> None:
        if self.root is None:
            raise RuntimeError("Editable region is not mounted")
        self.root.clear()
        fragment = BeautifulSoup(markup or "", "html.parser")
        for child in list(fragment.contents):
            self.root.append(child.extract())

    @property
    def text_content(self) -> str:
        if self.root is None:
            return ""
        return "".join(str(node) for node in _text_nodes(self.root))

    def create_element(self, name: str, text: Optional[str] = None, **attrs) -> Tag:
        tag = self._soup.new_tag(name, attrs=attrs)
        if text is not None:
            tag.string = text
        return tag

    def append(self, node) -> None:
        if self.root is None:
            raise RuntimeError("Editable region is not mounted")
        self.root.append(node)


@dataclass(frozen=True)
class TextRange:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid range {self.start}..{self.end}")

    @property
    def collapsed(self) -> bool:
        return self.start == self.end

    def to_string(self, region: EditableRegion) -> str:
        return region.text_content[self.start:self.end]

    def text_nodes(self, region: EditableRegion) -> list[NavigableString]:
        """Split at both ends and return the non-empty text nodes inside."""
        if region.root is None or self.collapsed:
            return []
        _split_text(region.root, self.start)
        _split_text(region.root, self.end)
        return [
            node
            for node, start, end in _text_spans(region.root)
            if start >= self.start and end <= self.end and end > start
        ]

    def delete_contents(self, region: EditableRegion) -> None:
        inside = self.text_nodes(region)
        if not inside:
            return
        root = region.root
        order = list(root.descendants)
        first = next(i for i, node in enumerate(order) if node is inside[0])
        last = next(i for i, node in enumerate(order) if node is inside[-1])

        contained = []
        index = first
        while index <= last:
            node = order[index]
            size = len(list(node.descendants)) if isinstance(node, Tag) else 0
            if index + size <= last:
                contained.append(node)
                index += size + 1
            else:
                index += 1

        contained[0].insert_before(NavigableString(""))
        for node in contained:
            node.extract()

    def insert_node(self, region: EditableRegion, node) -> None:
        if region.root is None:
            raise RuntimeError("Editable region is not mounted")
        _split_text(region.root, self.start)
        _insert_at(region.root, self.start, node)


class Selection:
    """Selection state for one editable region (at most one range)."""

    def __init__(self, region: EditableRegion) -> None:
        self.region = region
        self._ranges: list[TextRange] = []

    @property
    def range_count(self) -> int:
        return len(self._ranges)

    def get_range_at(self, index: int) -> TextRange:
        if not 0 <= index < len(self._ranges):
            raise IndexError(f"{index} is not a valid range index")
        return self._ranges[index]

    def add_range(self, text_range: TextRange) -> None:
        if not self._ranges:
            self._ranges.append(text_range)

    def collapse(self, offset: int) -> None:
        self._ranges = [TextRange(offset, offset)]

    def select_all_children(self) -> None:
        self._ranges = [TextRange(0, len(self.region.text_content))]

    def remove_all_ranges(self) -> None:
        self._ranges = []

    def to_string(self) -> str:
        """Rendered text of the selection: blocks on their own lines, whitespace collapsed."""
        if not self._ranges or self.region.root is None:
            return ""
        selected = self._ranges[0]
        parts: list[str] = []
        pos = 0

        def newline() -> None:
            if parts and parts[-1].endswith(" "):
                parts[-1] = parts[-1].rstrip(" ")
            if parts and not parts[-1].endswith("\n"):
                parts.append("\n")

        open_blocks: list[Tag] = []
        for node in self.region.root.descendants:
            inside = selected.start <= pos < selected.end
            # Text after a closed block starts on a new line
            while open_blocks and not _within(node, open_blocks[-1]):
                open_blocks.pop()
                if inside:
                    newline()
            if isinstance(node, Tag):
                if node.name == "br" and inside:
                    parts.append("\n")
                elif node.name in BLOCK_TAGS:
                    open_blocks.append(node)
                    if inside:
                        newline()
                continue
            if isinstance(node, PreformattedString):
                continue
            text = str(node)
            lo, hi = max(selected.start - pos, 0), min(selected.end - pos, len(text))
            if lo < hi:
                chunk = text[lo:hi]
                if node.find_parent("pre") is None:
                    chunk = _WHITESPACE.sub(" ", chunk)
                    if parts and parts[-1].endswith(("\n", " ")):
                        chunk = chunk.lstrip(" ")
                if chunk:
                    parts.append(chunk)
            pos += len(text)
        return "".join(parts).strip()
