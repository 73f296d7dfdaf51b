"""Clock utilities for testability."""

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time. Override in tests."""
    return datetime.now(UTC)


def monotonic() -> float:
    """Return monotonic seconds for measuring intervals. Override in tests."""
    return time.monotonic()
