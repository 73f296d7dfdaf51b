"""Redaction helpers for headers and log fields."""

from __future__ import annotations

from collections.abc import Mapping

_REDACTED = "***REDACTED***"
_SENSITIVE_HEADER_FRAGMENTS = frozenset({"authorization", "secret", "token", "cookie", "api-key"})


def _is_sensitive_header(name: str) -> bool:
    normalized = name.strip().lower()
    return any(fragment in normalized for fragment in _SENSITIVE_HEADER_FRAGMENTS)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with credential-bearing values masked."""
    return {
        name: (_REDACTED if _is_sensitive_header(name) else value)
        for name, value in headers.items()
    }


def redact_token(token: str) -> str:
    """Redact a bearer token for logging: abcdef123456 -> abcd***3456"""
    if not token:
        return ""
    if len(token) > 12:
        return token[:4] + "***" + token[-4:]
    return _REDACTED
