"""
naming.py
=========
Identifier generation for emitted Python code.

Display names from SSIS packages ("Load Data", "SQL - Truncate staging")
are mapped to valid, non-keyword Python identifiers. Each `NameScope`
remembers what it handed out so sibling objects that share a display name
receive distinct identifiers, numbered in first-seen order.
"""

from __future__ import annotations

import keyword
import re

_INVALID_CHARS_RE = re.compile(r"[^0-9a-zA-Z_]+")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_VARIABLE_NAMESPACE_RE = re.compile(r"^[A-Za-z_]\w*::")


def sanitize_identifier(text: str, fallback: str = "unnamed") -> str:
    """Convert arbitrary display text to a snake_case Python identifier."""
    ident = _CAMEL_BOUNDARY_RE.sub("_", text.strip())
    ident = _INVALID_CHARS_RE.sub("_", ident).strip("_").lower()
    ident = re.sub(r"_+", "_", ident)
    if not ident:
        ident = fallback
    if ident[0].isdigit():
        ident = f"_{ident}"
    if keyword.iskeyword(ident) or keyword.issoftkeyword(ident):
        ident = f"{ident}_"
    return ident


def variable_identifier(qualified_name: str) -> str:
    """`User::RowCount` → `row_count`; the namespace prefix is dropped."""
    bare = _VARIABLE_NAMESPACE_RE.sub("", qualified_name.strip())
    return sanitize_identifier(bare, fallback="var")


class NameScope:
    """
    One identifier namespace (module level, or a single function body).

    `claim(base)` returns `base` the first time and `base2`, `base3`, ...
    on later collisions. Identifiers already taken, including reserved ones,
    are never handed out twice.
    """

    def __init__(self, reserved: set[str] | None = None) -> None:
        self._taken: set[str] = set(reserved or ())
        self._counters: dict[str, int] = {}

    def __contains__(self, ident: str) -> bool:
        return ident in self._taken

    def claim(self, base: str) -> str:
        if base not in self._taken:
            self._taken.add(base)
            return base
        n = self._counters.get(base, 1)
        while True:
            n += 1
            candidate = f"{base}{n}"
            if candidate not in self._taken:
                break
        self._counters[base] = n
        self._taken.add(candidate)
        return candidate
