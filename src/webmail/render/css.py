"""Remove remote resource references from CSS found in email bodies.

Style sheets and inline ``style`` attributes are parsed with tinycss2. Any
declaration whose value loads something that is not an inline ``data:`` URI
is dropped, and the remaining rules are serialized back in a stable form so
that running the same pass twice yields the same text.
"""

from __future__ import annotations

from typing import Iterable, Optional

import tinycss2

# Functions whose string arguments are fetched by the browser
_FETCHING_FUNCTIONS = frozenset({"url", "image-set", "-webkit-image-set", "src"})

# At-rules whose block holds nested rules
_NESTED_RULE_AT_RULES = frozenset({"media", "supports", "document", "-moz-document", "layer", "container"})


def _is_data_uri(value: str) -> bool:
    return value.strip().lower().startswith("data:")


def references_remote(tokens: Iterable) -> bool:
    """True if any component value in ``tokens`` fetches a non-data URL."""
    for token in tokens:
        kind = token.type
        if kind == "url":
            if not _is_data_uri(token.value):
                return True
        elif kind == "function":
            if token.lower_name in _FETCHING_FUNCTIONS:
                targets = [t for t in token.arguments if t.type in ("string", "url")]
                if token.lower_name == "url" and not targets:
                    return True
                if any(not _is_data_uri(t.value) for t in targets):
                    return True
            if references_remote(token.arguments):
                return True
        elif kind in ("() block", "[] block", "{} block"):
            if references_remote(token.content):
                return True
    return False


def _declaration_name(decl) -> str:
    return decl.name if decl.name.startswith("--") else decl.lower_name


def _serialize_declaration(decl) -> str:
    value = tinycss2.serialize(decl.value).strip()
    important = " !important" if decl.important else ""
    return f"{_declaration_name(decl)}: {value}{important};"


def _filter_declarations(content) -> list[str]:
    declarations = tinycss2.parse_declaration_list(content, skip_comments=True, skip_whitespace=True)
    return [
        _serialize_declaration(decl)
        for decl in declarations
        if decl.type == "declaration" and not references_remote(decl.value)
    ]


def _block(prelude: str, body: list[str]) -> str:
    inner = " ".join(body)
    return f"{prelude} {{ {inner} }}" if inner else f"{prelude} {{ }}"


def _filter_rule(rule) -> Optional[str]:
    if rule.type == "qualified-rule":
        prelude = tinycss2.serialize(rule.prelude).strip()
        return _block(prelude, _filter_declarations(rule.content))

    if rule.type != "at-rule":
        return None

    keyword = rule.lower_at_keyword
    prelude = tinycss2.serialize(rule.prelude).strip()
    head = f"@{keyword} {prelude}" if prelude else f"@{keyword}"

    if keyword == "import":
        return None
    if references_remote(rule.prelude):
        return None
    if rule.content is None:
        return f"{head};"
    if keyword in _NESTED_RULE_AT_RULES:
        return _block(head, _filter_rules(rule.content))
    if keyword in ("font-face", "page"):
        return _block(head, _filter_declarations(rule.content))
    if references_remote(rule.content):
        return None
    return _block(head, [tinycss2.serialize(rule.content).strip()])


def _filter_rules(source) -> list[str]:
    rules = tinycss2.parse_stylesheet(source, skip_comments=True, skip_whitespace=True)
    kept = []
    for rule in rules:
        text = _filter_rule(rule)
        if text:
            kept.append(text)
    return kept


def strip_remote_rules(css_text: str) -> str:
    """Rebuild a style sheet without declarations that load remote resources.

    Rule texts are joined the way a browser's ``cssText`` values would be
    concatenated, each preceded by one space.
    """
    return "".join(f" {text}" for text in _filter_rules(css_text))


def strip_remote_declarations(style: str) -> str:
    """Filter an inline ``style`` attribute value."""
    return " ".join(_filter_declarations(style))
