"""In-memory TTL cache for fetched prompt versions."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from prompt_client.core.metrics import prompt_client_cache_lookups_total
from prompt_client.prompts.models import PromptVersion
from prompt_client.utils.clock import monotonic
from prompt_client.utils.single_flight import SingleFlight

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: PromptVersion
    inserted_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.inserted_at < self.ttl


class VersionCache:
    """Thread-safe cache keyed by resolved lookup key.

    Expiry is checked lazily on lookup. Concurrent misses on one key share a
    single ``fetch_fn`` call. A ``ttl`` of zero or less disables storing.
    """

    def __init__(self, clock: Callable[[], float] = monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._generation = 0
        self._flight: SingleFlight[PromptVersion] = SingleFlight()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> PromptVersion | None:
        """Return the cached value if present and unexpired."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_valid(self._clock()):
            return entry.value
        with self._lock:
            # Only drop the entry we judged stale, not one a concurrent fill just stored.
            if self._entries.get(key) is entry:
                del self._entries[key]
        return None

    def set(self, key: str, value: PromptVersion, ttl: float) -> None:
        with self._lock:
            generation = self._generation
        self._store(key, value, ttl, generation)

    def _store(self, key: str, value: PromptVersion, ttl: float, generation: int) -> bool:
        """Store unless ``clear()`` ran since ``generation`` was read."""
        if ttl <= 0:
            return False
        entry = CacheEntry(key=key, value=value, inserted_at=self._clock(), ttl=ttl)
        with self._lock:
            if generation != self._generation:
                return False
            self._entries[key] = entry
        return True

    def get_or_fetch(
        self,
        key: str,
        ttl: float,
        fetch_fn: Callable[[], PromptVersion],
    ) -> PromptVersion:
        cached = self.get(key)
        if cached is not None:
            prompt_client_cache_lookups_total.labels(result="hit").inc()
            return cached

        prompt_client_cache_lookups_total.labels(result="miss").inc()
        return self._flight.do(key, lambda: self._fill(key, ttl, fetch_fn))

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries = {}
            self._generation += 1
        logger.debug("Version cache cleared")

    def _fill(self, key: str, ttl: float, fetch_fn: Callable[[], PromptVersion]) -> PromptVersion:
        # A concurrent leader may have stored the value while we waited for the flight.
        cached = self.get(key)
        if cached is not None:
            return cached
        with self._lock:
            generation = self._generation
        value = fetch_fn()
        if self._store(key, value, ttl, generation):
            logger.debug("Version cache filled", key=key, ttl=ttl)
        return value
