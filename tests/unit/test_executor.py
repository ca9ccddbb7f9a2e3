"""
Unit tests for the command host (composer/executor.py).

Tests cover:
- Unsupported commands and missing selections
- Inline toggles
- Paragraph commands: alignment, indentation, lists
- Link and format removal
"""

import pytest

from webmail.composer.dom import EditableRegion, Selection, TextRange
from webmail.composer.executor import SoupCommandHost


def _host(html: str, start=None, end=None) -> SoupCommandHost:
    region = EditableRegion()
    region.mount()
    region.inner_html = html
    selection = Selection(region)
    if start is not None:
        selection.add_range(TextRange(start, end))
    return SoupCommandHost(region, selection)


class TestExecCommand:
    """Tests for exec_command() return values."""

    @pytest.mark.unit
    def test_unknown_command(self):
        host = _host("<p>Hello</p>", 0, 5)

        assert host.exec_command("insertImage") is False

    @pytest.mark.unit
    def test_unmounted_region(self):
        region = EditableRegion()
        selection = Selection(region)
        selection.add_range(TextRange(0, 0))

        assert SoupCommandHost(region, selection).exec_command("bold") is False

    @pytest.mark.unit
    def test_no_selection_api(self):
        region = EditableRegion()
        region.mount()

        assert SoupCommandHost(region, None).exec_command("bold") is False

    @pytest.mark.unit
    def test_invalid_font_size(self):
        host = _host("<p>Hello</p>", 0, 5)

        assert host.exec_command("fontSize", False, "9") is False
        assert host.region.inner_html == "<p>Hello</p>"

    @pytest.mark.unit
    def test_supported_command(self):
        host = _host("<p>Hello</p>", 0, 5)

        assert host.exec_command("italic") is True
        assert host.region.inner_html == "<p><i>Hello</i></p>"


class TestInline:
    """Tests for inline formatting toggles."""

    @pytest.mark.unit
    def test_toggle_off(self):
        host = _host("<p>Hello world</p>", 0, 5)

        host.exec_command("bold")
        host.exec_command("bold")

        assert host.region.inner_html == "<p>Hello world</p>"

    @pytest.mark.unit
    def test_range_across_elements(self):
        host = _host("<p>One</p><p>Two</p>", 1, 5)

        host.exec_command("underline")

        assert host.region.inner_html == "<p>O<u>ne</u></p><p><u>Tw</u>o</p>"

    @pytest.mark.unit
    def test_back_color(self):
        host = _host("<p>Hi</p>", 0, 2)

        host.exec_command("backColor", False, "#ffff00")

        assert host.region.inner_html == '<p><span style="background-color: #ffff00;">Hi</span></p>'

    @pytest.mark.unit
    def test_unlink(self):
        host = _host('<p><a href="https://example.com">link</a> text</p>', 0, 4)

        host.exec_command("unlink")

        assert host.region.inner_html == "<p>link text</p>"

    @pytest.mark.unit
    def test_remove_format(self):
        host = _host('<p><b><i>Hi</i></b> <a href="https://example.com">there</a></p>', 0, 8)

        host.exec_command("removeFormat")

        assert host.region.inner_html == '<p>Hi <a href="https://example.com">there</a></p>'


class TestParagraph:
    """Tests for alignment, indentation and lists."""

    @pytest.mark.unit
    def test_justify_center(self):
        host = _host("<p>Hello world</p>", 0, 5)

        host.exec_command("justifyCenter")

        assert host.region.inner_html == '<p style="text-align: center;">Hello world</p>'

    @pytest.mark.unit
    def test_justify_keeps_other_styles(self):
        host = _host('<p style="color: red;">Hello</p>', 0, 5)

        host.exec_command("justifyRight")

        assert host.region.inner_html == '<p style="color: red; text-align: right;">Hello</p>'

    @pytest.mark.unit
    def test_justify_keeps_data_uri_background(self):
        host = _host('<p style="background-image: url(data:image/png;base64,AAAA)">Hi</p>', 0, 2)

        host.exec_command("justifyCenter")

        assert host.region.inner_html == (
            '<p style="background-image: url(data:image/png;base64,AAAA); text-align: center;">Hi</p>'
        )

    @pytest.mark.unit
    def test_justify_replaces_existing_alignment(self):
        host = _host('<p style="TEXT-ALIGN: left; color: red !important">Hi</p>', 0, 2)

        host.exec_command("justifyRight")

        assert host.region.inner_html == '<p style="text-align: right; color: red !important;">Hi</p>'

    @pytest.mark.unit
    def test_justify_loose_text_gets_block(self):
        host = _host("Hello", 0, 5)

        host.exec_command("justifyLeft")

        assert host.region.inner_html == '<div style="text-align: left;">Hello</div>'

    @pytest.mark.unit
    def test_indent_and_outdent(self):
        host = _host("<p>One</p>", 0, 3)

        host.exec_command("indent")
        assert host.region.inner_html == (
            '<blockquote style="margin: 0 0 0 40px; border: none; padding: 0px;"><p>One</p></blockquote>'
        )

        host.exec_command("outdent")
        assert host.region.inner_html == "<p>One</p>"

    @pytest.mark.unit
    def test_ordered_list_toggle(self):
        host = _host("<p>One</p><p>Two</p>", 0, 6)

        host.exec_command("insertOrderedList")
        assert host.region.inner_html == "<ol><li>One</li><li>Two</li></ol>"

        host.exec_command("insertOrderedList")
        assert host.region.inner_html == "<div>One</div><div>Two</div>"

    @pytest.mark.unit
    def test_switch_list_kind(self):
        host = _host("<ol><li>One</li></ol>", 0, 3)

        host.exec_command("insertUnorderedList")

        assert host.region.inner_html == "<ul><li>One</li></ul>"


class TestInsertText:
    """Tests for insertText."""

    @pytest.mark.unit
    def test_insert_into_empty_region(self):
        host = _host("", 0, 0)

        host.exec_command("insertText", False, "Hi")

        assert host.region.inner_html == "Hi"
        assert host.selection.get_range_at(0) == TextRange(2, 2)

    @pytest.mark.unit
    def test_insert_at_start(self):
        host = _host("<p>world</p>", 0, 0)

        host.exec_command("insertText", False, "Hello ")

        assert host.region.inner_html == "<p>Hello world</p>"
