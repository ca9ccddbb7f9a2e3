"""
Unit tests for account settings helpers (mail/accounts.py).

Tests cover:
- Bounce rule validation
- JSON patch diffs between account states
"""

import pytest

from webmail.core.models import Account
from webmail.mail.accounts import clean_bounce_rules, diff_account, format_rule, validate_bounce_rule


class TestBounceRules:
    """Tests for validate_bounce_rule() and friends."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "rule,valid",
        [
            ("*", True),
            ("spammer@example.com", True),
            ("example.com", True),
            ("@example.com", True),
            ("spammer@example", False),
            (".com", False),
            ("nodots", False),
            ("", False),
        ],
    )
    def test_validate(self, rule, valid):
        assert validate_bounce_rule(rule) is valid

    @pytest.mark.unit
    def test_clean_drops_invalid_and_blank(self):
        assert clean_bounce_rules([" example.com ", "bad", "", "*"]) == ["example.com", "*"]

    @pytest.mark.unit
    def test_format_rule(self):
        assert format_rule("*") == "All senders"
        assert format_rule("example.com") == "example.com"


class TestDiffAccount:
    """Tests for diff_account()."""

    @pytest.mark.unit
    def test_no_changes(self):
        account = Account(id="alice", name="Alice", forward_targets=["a@b.com"])

        assert diff_account(account, account.model_copy()) == []

    @pytest.mark.unit
    def test_replace_and_add(self):
        current = Account(id="alice", name="Old", forward_targets=["x@example.com"])
        updated = Account(id="alice", name="New", forward_targets=["x@example.com", "y@example.com"])

        ops = [op.to_wire() for op in diff_account(current, updated)]

        assert ops == [
            {"op": "replace", "path": "/name", "value": "New"},
            {"op": "add", "path": "/forwardTargets/1", "value": "y@example.com"},
        ]

    @pytest.mark.unit
    def test_removals_last_first(self):
        current = Account(id="alice", bounce_senders=["a.com", "b.com", "c.com"])
        updated = Account(id="alice", bounce_senders=["a.com"])

        ops = [op.to_wire() for op in diff_account(current, updated)]

        assert ops == [
            {"op": "remove", "path": "/bounceSenders/2"},
            {"op": "remove", "path": "/bounceSenders/1"},
        ]

    @pytest.mark.unit
    def test_replaced_list_entry(self):
        current = Account(id="alice", bounce_senders=["a.com"])
        updated = Account(id="alice", bounce_senders=["*"])

        ops = [op.to_wire() for op in diff_account(current, updated)]

        assert ops == [{"op": "replace", "path": "/bounceSenders/0", "value": "*"}]
