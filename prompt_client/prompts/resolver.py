"""Resolve a prompt name plus optional label/version to a prompt version."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import quote

import pydantic
import structlog

from prompt_client.core.errors import (
    APIError,
    NoProductionVersionError,
    NotFoundError,
    PromptClientError,
    ValidationError,
)
from prompt_client.core.metrics import prompt_client_cache_lookups_total
from prompt_client.prompts.cache import VersionCache
from prompt_client.prompts.models import PRODUCTION_LABEL, PromptVersion

logger = structlog.get_logger(__name__)

PROMPTS_PATH = "/v1/prompts"
NO_PRODUCTION_VERSION_CODES = frozenset({"NO_PRODUCTION_VERSION", "no_production_version"})


class PromptTransport(Protocol):
    def execute(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        parse: Callable[[Any], Any] | None = None,
        translate_error: Callable[[APIError], PromptClientError] | None = None,
    ) -> Any: ...


def lookup(label: str | None = None, version: str | int | None = None) -> tuple[str, str]:
    """Pick the lookup dimension: explicit version, then label, then production."""
    if version is not None and str(version) != "":
        return "version", str(version)
    if label:
        return "label", label
    return "label", PRODUCTION_LABEL


def cache_key(name: str, label: str | None = None, version: str | int | None = None) -> str:
    kind, value = lookup(label, version)
    return f"{name}:{kind}:{value}"


class VersionResolver:
    def __init__(
        self,
        transport: PromptTransport,
        cache: VersionCache,
        *,
        cache_enabled: bool = True,
        default_ttl: float = 300.0,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._cache_enabled = cache_enabled
        self._default_ttl = default_ttl

    def resolve(
        self,
        name: str,
        label: str | None = None,
        version: str | int | None = None,
        *,
        use_cache: bool = True,
        cache_ttl: float | None = None,
    ) -> PromptVersion:
        if not name or not name.strip():
            raise ValidationError("Prompt name must be a non-empty string")
        if cache_ttl is not None and cache_ttl < 0:
            raise ValidationError("cache_ttl must be >= 0", details={"cache_ttl": cache_ttl})

        kind, value = lookup(label, version)

        def fetch() -> PromptVersion:
            return self._fetch(name, kind, value)

        if not (use_cache and self._cache_enabled):
            prompt_client_cache_lookups_total.labels(result="bypass").inc()
            return fetch()

        ttl = self._default_ttl if cache_ttl is None else cache_ttl
        return self._cache.get_or_fetch(cache_key(name, label, version), ttl, fetch)

    def _fetch(self, name: str, kind: str, value: str) -> PromptVersion:
        path = f"{PROMPTS_PATH}/{quote(name, safe='')}"

        def parse(payload: Any) -> PromptVersion:
            try:
                return PromptVersion.model_validate(payload)
            except pydantic.ValidationError as e:
                raise ValidationError(
                    f"Prompt service returned an invalid version payload for '{name}'",
                    details={"errors": e.errors(include_url=False)},
                ) from e

        def translate_error(error: APIError) -> PromptClientError:
            no_production = error.error_code in NO_PRODUCTION_VERSION_CODES
            if isinstance(error, NotFoundError) and no_production:
                return NoProductionVersionError(
                    f"Prompt '{name}' has no production version",
                    prompt_name=name,
                    request_id=error.request_id,
                    details={"status_code": error.status_code, "error_code": error.error_code},
                )
            return error

        prompt_version = self._transport.execute(
            "GET",
            path,
            params={kind: value},
            parse=parse,
            translate_error=translate_error,
        )
        logger.debug(
            "Prompt version fetched",
            prompt=name,
            lookup=kind,
            value=value,
            version=prompt_version.version,
        )
        return prompt_version
