"""Telemetry hooks invoked around every prompt service request.

Hooks are registered per client instance; two clients in one process never
observe each other's traffic. A hook that raises is logged and skipped, it
never changes the outcome of the request it observes.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

import structlog

from prompt_client.utils.redaction import redact_headers

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RequestRecord:
    correlation_id: str
    method: str
    url: str
    headers: Mapping[str, str]
    attempt: int


@dataclass(frozen=True)
class ResponseRecord:
    correlation_id: str
    status_code: int
    headers: Mapping[str, str]
    elapsed: float
    attempt: int


@dataclass(frozen=True)
class ErrorRecord:
    correlation_id: str
    error: Exception
    elapsed: float


RequestHook = Callable[[RequestRecord], None]
ResponseHook = Callable[[ResponseRecord], None]
ErrorHook = Callable[[ErrorRecord], None]


class HookKind(StrEnum):
    BEFORE_REQUEST = "before_request"
    AFTER_RESPONSE = "after_response"
    ON_ERROR = "on_error"


def freeze_headers(headers: Mapping[str, str]) -> Mapping[str, str]:
    """Read-only, redacted copy of ``headers`` for hook records."""
    return MappingProxyType(redact_headers(headers))


class TelemetryDispatcher:
    """Holds the three hook lists and fans records out to them."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._lock = threading.Lock()
        self._hooks: dict[HookKind, list[Callable]] = {kind: [] for kind in HookKind}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_before_request(self, hook: RequestHook) -> None:
        self._add(HookKind.BEFORE_REQUEST, hook)

    def add_after_response(self, hook: ResponseHook) -> None:
        self._add(HookKind.AFTER_RESPONSE, hook)

    def add_on_error(self, hook: ErrorHook) -> None:
        self._add(HookKind.ON_ERROR, hook)

    def set_hooks(self, kind: HookKind | str, hooks: Iterable[Callable]) -> None:
        """Replace every hook of ``kind`` with ``hooks``."""
        kind = HookKind(kind)
        with self._lock:
            self._hooks[kind] = list(hooks)

    def clear(self, kind: HookKind | str | None = None) -> None:
        with self._lock:
            if kind is None:
                self._hooks = {k: [] for k in HookKind}
            else:
                self._hooks[HookKind(kind)] = []

    def hooks(self, kind: HookKind | str) -> tuple[Callable, ...]:
        with self._lock:
            return tuple(self._hooks[HookKind(kind)])

    def _add(self, kind: HookKind, hook: Callable) -> None:
        if not callable(hook):
            raise TypeError(f"{kind.value} hook must be callable, got {type(hook).__name__}")
        with self._lock:
            self._hooks[kind] = [*self._hooks[kind], hook]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def before_request(self, record: RequestRecord) -> None:
        self._dispatch(HookKind.BEFORE_REQUEST, record)

    def after_response(self, record: ResponseRecord) -> None:
        self._dispatch(HookKind.AFTER_RESPONSE, record)

    def on_error(self, record: ErrorRecord) -> None:
        self._dispatch(HookKind.ON_ERROR, record)

    def _dispatch(self, kind: HookKind, record: object) -> None:
        if not self.enabled:
            return
        for hook in self.hooks(kind):
            try:
                hook(record)
            except Exception:
                logger.warning(
                    "Telemetry hook failed",
                    hook_kind=kind.value,
                    hook=getattr(hook, "__qualname__", repr(hook)),
                    correlation_id=getattr(record, "correlation_id", None),
                    exc_info=True,
                )
