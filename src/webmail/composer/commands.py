"""Typed editing commands and their native command names."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, Union


class FormatCommand(str, Enum):
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKE_THROUGH = "strikeThrough"
    SUBSCRIPT = "subscript"
    SUPERSCRIPT = "superscript"
    JUSTIFY_LEFT = "justifyLeft"
    JUSTIFY_CENTER = "justifyCenter"
    JUSTIFY_RIGHT = "justifyRight"
    OUTDENT = "outdent"
    INDENT = "indent"
    INSERT_ORDERED_LIST = "insertOrderedList"
    INSERT_UNORDERED_LIST = "insertUnorderedList"
    UNLINK = "unlink"
    REMOVE_FORMAT = "removeFormat"

    @classmethod
    def parse(cls, value: str) -> "FormatCommand":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unsupported format command: {value!r}") from None


class ColorCommand(str, Enum):
    FORE_COLOR = "foreColor"
    BACK_COLOR = "backColor"

    @classmethod
    def parse(cls, value: str) -> "ColorCommand":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unsupported color command: {value!r}") from None


class FontSize(str, Enum):
    EXTRA_SMALL = "1"
    SMALL = "2"
    NORMAL = "3"
    LARGE = "4"
    EXTRA_LARGE = "5"
    XX_LARGE = "6"
    HUGE = "7"

    @property
    def label(self) -> str:
        return _FONT_SIZE_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "FontSize":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unsupported font size: {value!r}") from None


_FONT_SIZE_LABELS = {
    FontSize.EXTRA_SMALL: "Extra small",
    FontSize.SMALL: "Small",
    FontSize.NORMAL: "Normal",
    FontSize.LARGE: "Large",
    FontSize.EXTRA_LARGE: "Extra large",
    FontSize.XX_LARGE: "XX Large",
    FontSize.HUGE: "Huge",
}

FONT_SIZE_COMMAND = "fontSize"
INSERT_TEXT_COMMAND = "insertText"

# Only this table turns typed commands into the host's command strings
NATIVE_COMMANDS: dict[Union[FormatCommand, ColorCommand], str] = {
    **{command: command.value for command in FormatCommand},
    **{command: command.value for command in ColorCommand},
}


def native_name(command: Union[FormatCommand, ColorCommand]) -> str:
    return NATIVE_COMMANDS[command]


class CommandHost(Protocol):
    """Something that executes named editing commands against a selection.

    Returns False when the command is unsupported or cannot run; never raises
    for those cases.
    """

    def exec_command(self, name: str, show_ui: bool = False, value: Optional[str] = None) -> bool:
        ...


# ---- Toolbar layout ----

TEXT_BUTTONS = [
    (FormatCommand.BOLD, "Bold"),
    (FormatCommand.ITALIC, "Italic"),
    (FormatCommand.UNDERLINE, "Underline"),
    (FormatCommand.STRIKE_THROUGH, "Strikethrough"),
    (FormatCommand.SUBSCRIPT, "Subscript"),
    (FormatCommand.SUPERSCRIPT, "Superscript"),
]

PARAGRAPH_BUTTONS = [
    (FormatCommand.JUSTIFY_LEFT, "Left align"),
    (FormatCommand.JUSTIFY_CENTER, "Center align"),
    (FormatCommand.JUSTIFY_RIGHT, "Right align"),
    (FormatCommand.OUTDENT, "Decrease indent"),
    (FormatCommand.INDENT, "Increase indent"),
    (FormatCommand.INSERT_ORDERED_LIST, "Numbered list"),
    (FormatCommand.INSERT_UNORDERED_LIST, "Bulleted list"),
]

COLOR_BUTTONS = [
    (ColorCommand.FORE_COLOR, "Font color", "#000000"),
    (ColorCommand.BACK_COLOR, "Background color", "#ffffff"),
]
