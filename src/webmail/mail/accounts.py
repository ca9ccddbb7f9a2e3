"""Account settings: JSON patch diffs and bounce sender rules."""

from __future__ import annotations

from typing import Any, Iterable

from webmail.core.models import Account, PatchOperation

ALL_SENDERS = "*"


def validate_bounce_rule(rule: str) -> bool:
    """Accept ``*``, a full address with a dotted domain, or a dotted domain."""
    trimmed = rule.strip()
    if trimmed == ALL_SENDERS:
        return True
    at = trimmed.find("@")
    if at > 0:
        return trimmed.find(".", at) > 0
    return trimmed.find(".") > 0


def clean_bounce_rules(rules: Iterable[str]) -> list[str]:
    return [rule.strip() for rule in rules if rule.strip() and validate_bounce_rule(rule)]


def format_rule(rule: str) -> str:
    return "All senders" if rule.strip() == ALL_SENDERS else rule


def _diff(path: str, old: Any, new: Any, ops: list[PatchOperation]) -> None:
    if isinstance(old, list) and isinstance(new, list):
        for index in range(min(len(old), len(new))):
            _diff(f"{path}/{index}", old[index], new[index], ops)
        for index in range(len(old), len(new)):
            ops.append(PatchOperation(op="add", path=f"{path}/{index}", value=new[index]))
        # Trailing removals go last-first so earlier indexes stay valid
        for index in range(len(old) - 1, len(new) - 1, -1):
            ops.append(PatchOperation(op="remove", path=f"{path}/{index}"))
    elif old != new:
        ops.append(PatchOperation(op="replace", path=path, value=new))


def diff_account(current: Account, updated: Account) -> list[PatchOperation]:
    """JSON patch operations turning ``current`` into ``updated``."""
    old, new = current.to_wire(), updated.to_wire()
    ops: list[PatchOperation] = []
    for key in sorted(old.keys() - new.keys()):
        ops.append(PatchOperation(op="remove", path=f"/{key}"))
    for key, value in new.items():
        if key not in old:
            ops.append(PatchOperation(op="add", path=f"/{key}", value=value))
        else:
            _diff(f"/{key}", old[key], value, ops)
    return ops
