"""Placeholder extraction and substitution for prompt templates.

Placeholders are double-brace tokens such as ``{{customer_name}}``; inner
whitespace (``{{ customer_name }}``) is tolerated.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from prompt_client.core.errors import RenderError

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def extract_variables(content: str) -> tuple[str, ...]:
    """Return declared variable names in first-occurrence order, de-duplicated."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_RE.finditer(content):
        seen.setdefault(match.group(1), None)
    return tuple(seen)


def find_missing(declared: Iterable[str], values: Mapping[str, Any]) -> list[str]:
    return [name for name in declared if name not in values]


def render(content: str, declared: Iterable[str], values: Mapping[str, Any]) -> str:
    """Substitute every declared placeholder with ``str(value)``.

    Raises:
        RenderError: listing every declared variable without a value.
    """
    declared = tuple(declared)
    missing = find_missing(declared, values)
    if missing:
        raise RenderError(
            f"Missing template variables: {', '.join(missing)}",
            missing_variables=missing,
        )

    declared_set = frozenset(declared)

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in declared_set:
            return match.group(0)
        return str(values[name])

    return PLACEHOLDER_RE.sub(_substitute, content)
