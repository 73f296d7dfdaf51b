"""Root conftest for tests."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from prompt_client.core.config import (
    CacheConfig,
    CredentialsConfig,
    HttpConfig,
    RetryConfig,
    Settings,
    TelemetryConfig,
)

API_BASE = "https://prompts.test"
AUTH_URL = "https://auth.test/oauth/token"


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    dir_marker_map = {
        "unit": pytest.mark.unit,
        "integration": pytest.mark.integration,
    }
    for item in items:
        test_path = str(item.fspath)
        for dir_name, marker in dir_marker_map.items():
            if f"/{dir_name}/" in test_path or f"\\{dir_name}\\" in test_path:
                item.add_marker(marker)
                break


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer PROMPT_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("PROMPT_"):
            monkeypatch.delenv(key, raising=False)


def build_settings(
    *,
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 30.0,
    cache_enabled: bool = True,
    cache_ttl: float = 300.0,
    telemetry_enabled: bool = True,
    refresh_buffer: float = 60.0,
    environment: str = "production",
) -> Settings:
    return Settings(
        credentials=CredentialsConfig(
            organization_id="org-1",
            key_id="key-1",
            key_secret="secret-1",
            api_base_url=API_BASE,
            auth_url=AUTH_URL,
            environment=environment,
            token_refresh_buffer_seconds=refresh_buffer,
        ),
        http=HttpConfig(),
        cache=CacheConfig(enabled=cache_enabled, ttl_seconds=cache_ttl),
        retry=RetryConfig(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay),
        telemetry=TelemetryConfig(enabled=telemetry_enabled),
    )


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return build_settings


class FakeClock:
    """Monotonic and wall clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = 1000.0
        self.wall = start or datetime(2026, 1, 1, tzinfo=UTC)
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def utc_now(self) -> datetime:
        return self.wall

    def advance(self, seconds: float) -> None:
        self.now += seconds
        self.wall += timedelta(seconds=seconds)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def version_payload(
    name: str = "greeting",
    *,
    version: int = 1,
    content: str = "Hello {{name}}, welcome to {{place}}!",
    is_production: bool = True,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "id": f"pv-{name}-{version}",
        "prompt_id": f"p-{name}",
        "version": version,
        "content": content,
        "status": "published",
        "is_production": is_production,
        "type": "text",
        "metadata": {"model": "gpt-4o", "temperature": 0.2},
        "created_at": "2026-01-01T00:00:00Z",
        "updated_at": "2026-01-02T00:00:00Z",
        **extra,
    }


@pytest.fixture
def payload_factory() -> Callable[..., dict[str, Any]]:
    return version_payload


class FakePromptService:
    """In-process stand-in for the auth endpoint and the prompt API.

    ``prompts`` maps name -> {"label:production": payload, "version:3": payload}.
    ``queued`` responses for the prompt API are served first, in order.
    """

    def __init__(self) -> None:
        self.prompts: dict[str, dict[str, dict[str, Any]]] = {}
        self.no_production: set[str] = set()
        self.queued: list[httpx.Response | Exception] = []
        self.token_calls = 0
        self.token_status = 200
        self.token_expires_in = 3600
        self.api_requests: list[httpx.Request] = []

    def add(self, name: str, payload: dict[str, Any], *keys: str) -> None:
        self.prompts.setdefault(name, {})
        for key in keys:
            self.prompts[name][key] = payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == AUTH_URL:
            return self._token(request)
        self.api_requests.append(request)
        if self.queued:
            queued = self.queued.pop(0)
            if isinstance(queued, Exception):
                raise queued
            return queued
        return self._prompt(request)

    def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_calls += 1
        body = json.loads(request.content)
        if self.token_status != 200:
            return httpx.Response(self.token_status, json={"error": "invalid_client"})
        assert body["grant_type"] == "client_credentials"
        return httpx.Response(
            200,
            json={"access_token": f"tok-{self.token_calls}", "expires_in": self.token_expires_in},
        )

    def _prompt(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if name not in self.prompts and name not in self.no_production:
            return httpx.Response(
                404,
                json={"code": "PROMPT_NOT_FOUND", "message": f"Prompt {name} not found"},
                headers={"X-Request-ID": "srv-404"},
            )
        params = request.url.params
        key = f"version:{params['version']}" if "version" in params else f"label:{params['label']}"
        payload = self.prompts.get(name, {}).get(key)
        if payload is None:
            if name in self.no_production and key == "label:production":
                return httpx.Response(
                    404,
                    json={
                        "error": {
                            "code": "NO_PRODUCTION_VERSION",
                            "message": "No production version",
                            "request_id": "srv-nprod",
                        }
                    },
                )
            return httpx.Response(404, json={"code": "VERSION_NOT_FOUND", "message": key})
        return httpx.Response(200, json=payload)


@pytest.fixture
def service() -> FakePromptService:
    return FakePromptService()


@pytest.fixture
def make_client(
    service: FakePromptService, clock: FakeClock
) -> Callable[..., Any]:
    from prompt_client.client import PromptClient

    created: list[PromptClient] = []

    def _make(settings: Settings | None = None) -> PromptClient:
        client = PromptClient(
            settings or build_settings(),
            http_transport=httpx.MockTransport(service.handler),
            sleep=clock.sleep,
            monotonic_clock=clock.monotonic,
            wall_clock=clock.utc_now,
            jitter=lambda: 0.5,
        )
        created.append(client)
        return client

    yield _make

    for client in created:
        client.close()
