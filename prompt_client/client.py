"""Prompt client facade.

``PromptClient(settings)`` builds an independent client with its own
credentials, token, cache and hooks. ``configure()`` / ``get_client()``
expose an opt-in process-wide instance for applications that want one.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import httpx
import pydantic
import structlog
from opentelemetry import trace

from prompt_client.clients.authenticator import TokenAuthenticator
from prompt_client.clients.transport import Transport, build_http_client
from prompt_client.core.config import Settings
from prompt_client.core.credentials import StaticKeyCredentials
from prompt_client.core.errors import ConfigurationError, PromptClientError
from prompt_client.core.hooks import ErrorHook, RequestHook, ResponseHook, TelemetryDispatcher
from prompt_client.prompts.cache import VersionCache
from prompt_client.prompts.models import PromptVersion
from prompt_client.prompts.resolver import VersionResolver, cache_key
from prompt_client.utils.clock import monotonic, utc_now

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


def _load_settings() -> Settings:
    try:
        return Settings()
    except pydantic.ValidationError as e:
        raise ConfigurationError(
            "Invalid prompt client configuration",
            details={"errors": e.errors(include_url=False)},
        ) from e


class PromptClient:
    """Fetches, caches and renders prompt versions.

    The client opens its HTTP connection pool lazily on first use. Call
    ``close()`` when done, or use it as a context manager; ``close()`` is
    idempotent and a closed client reopens on the next call.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        http_transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic_clock: Callable[[], float] = monotonic,
        wall_clock: Callable[[], datetime] = utc_now,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        self._settings = settings or _load_settings()
        self._credentials = StaticKeyCredentials.from_config(self._settings.credentials)
        self._http_transport = http_transport
        self._sleep = sleep
        self._monotonic = monotonic_clock
        self._wall_clock = wall_clock
        self._jitter = jitter

        self.telemetry = TelemetryDispatcher(enabled=self._settings.telemetry.enabled)
        self._cache = VersionCache(clock=monotonic_clock)

        self._lock = threading.Lock()
        self._http: httpx.Client | None = None
        self._resolver: VersionResolver | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> PromptClient:
        with self._lock:
            if self._http is None:
                self._build()
        return self

    def close(self) -> None:
        with self._lock:
            http, self._http = self._http, None
            self._resolver = None
        if http is not None:
            try:
                http.close()
            except (RuntimeError, httpx.HTTPError):
                logger.warning("Error closing HTTP client", exc_info=True)

    @property
    def is_open(self) -> bool:
        return self._http is not None

    def __enter__(self) -> PromptClient:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _build(self) -> None:
        http = build_http_client(self._settings.http, transport=self._http_transport)
        authenticator = TokenAuthenticator(
            self._credentials,
            http,
            refresh_buffer_seconds=self._settings.credentials.token_refresh_buffer_seconds,
            clock=self._wall_clock,
        )
        transport = Transport(
            self._credentials,
            authenticator,
            self.telemetry,
            http,
            self._settings.retry,
            sleep=self._sleep,
            clock=self._monotonic,
            jitter=self._jitter,
            request_timeout=self._settings.http.request_timeout,
        )
        self._resolver = VersionResolver(
            transport,
            self._cache,
            cache_enabled=self._settings.cache.enabled,
            default_ttl=self._settings.cache.ttl_seconds,
        )
        self._http = http

    def _get_resolver(self) -> VersionResolver:
        self.open()
        resolver = self._resolver
        if resolver is None:
            raise PromptClientError("Prompt client was closed during the call")
        return resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_version(
        self,
        name: str,
        label: str | None = None,
        version: str | int | None = None,
        cache: bool = True,
        cache_ttl: float | None = None,
    ) -> PromptVersion:
        """Fetch a prompt version by explicit version, label, or the production label."""
        with tracer.start_as_current_span("prompt_client.get_version") as span:
            span.set_attribute("prompt.name", name)
            if version is not None:
                span.set_attribute("prompt.requested_version", str(version))
            elif label:
                span.set_attribute("prompt.label", label)
            span.set_attribute("prompt.cache", cache)
            try:
                prompt_version = self._get_resolver().resolve(
                    name, label, version, use_cache=cache, cache_ttl=cache_ttl
                )
            except PromptClientError as e:
                span.record_exception(e)
                span.set_attribute("prompt.error", type(e).__name__)
                raise
            span.set_attribute("prompt.version", prompt_version.version)
            return prompt_version

    def render_prompt(
        self,
        name: str,
        variables: Mapping[str, Any],
        label: str | None = None,
        version: str | int | None = None,
        cache: bool = True,
        cache_ttl: float | None = None,
    ) -> str:
        """Fetch a prompt version and render it with ``variables``."""
        prompt_version = self.get_version(
            name, label=label, version=version, cache=cache, cache_ttl=cache_ttl
        )
        return prompt_version.render(variables)

    def clear_cache(self) -> None:
        self._cache.clear()

    def invalidate(
        self, name: str, label: str | None = None, version: str | int | None = None
    ) -> bool:
        """Drop one cached lookup. Returns whether an entry was present."""
        return self._cache.invalidate(cache_key(name, label, version))

    # ------------------------------------------------------------------
    # Telemetry hooks
    # ------------------------------------------------------------------

    def add_request_hook(self, hook: RequestHook) -> None:
        self.telemetry.add_before_request(hook)

    def add_response_hook(self, hook: ResponseHook) -> None:
        self.telemetry.add_after_response(hook)

    def add_error_hook(self, hook: ErrorHook) -> None:
        self.telemetry.add_on_error(hook)

    def clear_hooks(self) -> None:
        self.telemetry.clear()


# ---------------------------------------------------------------------------
# Opt-in process-wide client
# ---------------------------------------------------------------------------

_default_client: PromptClient | None = None
_default_lock = threading.Lock()


def configure(settings: Settings | None = None, **kwargs: Any) -> PromptClient:
    """Replace the process-wide client with one built from ``settings``."""
    global _default_client
    client = PromptClient(settings, **kwargs)
    with _default_lock:
        previous, _default_client = _default_client, client
    if previous is not None:
        previous.close()
    return client


def get_client() -> PromptClient:
    """Return the process-wide client, creating it from the environment on first use."""
    global _default_client
    with _default_lock:
        if _default_client is None:
            _default_client = PromptClient()
        return _default_client


def reset_client() -> None:
    """Close and forget the process-wide client."""
    global _default_client
    with _default_lock:
        client, _default_client = _default_client, None
    if client is not None:
        client.close()
