"""
Unit tests for reply, reply-all and forward seeding (render/reply.py).

Tests cover:
- Subject prefixes
- Quote header formatting
- Recipient selection per compose mode
"""

import pytest

from webmail.core.models import EmailContents
from webmail.render.reply import (
    ComposeMode,
    forward_subject,
    quote_body,
    reply_subject,
    seed_compose,
)

from tests.fixtures.emails import NEWSLETTER_CONTENTS, OWN_ADDRESS


@pytest.fixture
def newsletter() -> EmailContents:
    return EmailContents.model_validate(NEWSLETTER_CONTENTS)


class TestSubjects:
    """Tests for reply_subject() and forward_subject()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "subject,expected",
        [
            ("Hello", "RE: Hello"),
            ("RE: Hello", "RE: Hello"),
            ("re:Hello", "RE: Hello"),
            (None, "RE: no subject"),
        ],
    )
    def test_reply_subject(self, subject, expected):
        assert reply_subject(subject) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "subject,expected",
        [
            ("Hello", "FW: Hello"),
            ("Fwd: Hello", "FW: Hello"),
            ("FW: Hello", "FW: Hello"),
            ("", "FW: no subject"),
        ],
    )
    def test_forward_subject(self, subject, expected):
        assert forward_subject(subject) == expected


class TestQuoteBody:
    """Tests for quote_body()."""

    @pytest.mark.unit
    def test_header_line(self, newsletter):
        result = quote_body(newsletter, "<p>Body</p>")

        assert "On 1/5/2024 at 3:04:05 PM News &lt;news@example.com&gt; wrote:" in result
        assert "<blockquote" in result
        assert "<p>Body</p>" in result

    @pytest.mark.unit
    def test_unknown_date(self):
        email = EmailContents(subject="x")

        result = quote_body(email, "")

        assert "On unknown at unknown unknown sender wrote:" in result

    @pytest.mark.unit
    def test_midnight_is_twelve_am(self):
        email = EmailContents(date="2024-03-09T00:07:01+00:00")

        assert "at 12:07:01 AM" in quote_body(email, "")


class TestSeedCompose:
    """Tests for seed_compose()."""

    @pytest.mark.unit
    def test_reply_goes_to_sender(self, newsletter):
        seed = seed_compose(ComposeMode.REPLY, newsletter, OWN_ADDRESS)

        assert seed.subject == "RE: Weekly news"
        assert [a.address for a in seed.to] == ["news@example.com"]
        assert seed.cc == []
        assert seed.in_reply_to == "<newer@example.com>"
        assert seed.references == ["<thread@example.com>"]

    @pytest.mark.unit
    def test_reply_prefers_reply_to(self, newsletter):
        newsletter.reply_to_address.display = "List <list@example.com>"
        newsletter.reply_to_address.value = [
            newsletter.from_address.value[0].model_copy(update={"address": "list@example.com"})
        ]

        seed = seed_compose(ComposeMode.REPLY, newsletter, OWN_ADDRESS)

        assert [a.address for a in seed.to] == ["list@example.com"]

    @pytest.mark.unit
    def test_reply_all_excludes_own_address(self, newsletter):
        seed = seed_compose(ComposeMode.REPLY_ALL, newsletter, OWN_ADDRESS)

        assert [a.address for a in seed.to] == ["news@example.com", "carol@example.com"]
        assert [a.address for a in seed.cc] == ["dave@example.com"]

    @pytest.mark.unit
    def test_forward_has_no_recipients(self, newsletter):
        seed = seed_compose(ComposeMode.FORWARD, newsletter, OWN_ADDRESS)

        assert seed.subject == "FW: Weekly news"
        assert seed.to == []
        assert seed.cc == []

    @pytest.mark.unit
    def test_quoted_body_blocks_remote_images(self, newsletter):
        seed = seed_compose(ComposeMode.FORWARD, newsletter, OWN_ADDRESS)

        assert "Weekly news" in seed.body
        assert "track.example" not in seed.body
