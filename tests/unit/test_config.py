"""Unit tests for config module."""

import pytest
from pydantic import ValidationError

from prompt_client.core.config import (
    CacheConfig,
    CredentialsConfig,
    HttpConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    RetryConfig,
    Settings,
    TelemetryConfig,
    get_settings,
    reload_settings,
)


def test_defaults():
    settings = Settings()
    assert settings.credentials.environment == "production"
    assert settings.credentials.token_refresh_buffer_seconds == 60.0
    assert settings.http.request_timeout == 30.0
    assert settings.http.connect_timeout == 10.0
    assert settings.cache.enabled is True
    assert settings.cache.ttl_seconds == 300.0
    assert settings.retry.max_retries == 3
    assert settings.retry.base_delay == 0.5
    assert settings.retry.max_delay == 30.0
    assert settings.telemetry.enabled is True
    assert settings.logging.level == LogLevel.INFO
    assert settings.logging.format == LogFormat.JSON


def test_credentials_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PROMPT_ORGANIZATION_ID", " org-9 ")
    monkeypatch.setenv("PROMPT_KEY_ID", "key-9")
    monkeypatch.setenv("PROMPT_KEY_SECRET", "shh")
    monkeypatch.setenv("PROMPT_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("PROMPT_AUTH_URL", "https://auth.example.com/token")
    monkeypatch.setenv("PROMPT_ENVIRONMENT", "staging")

    config = CredentialsConfig()

    assert config.organization_id == "org-9"
    assert config.key_secret.get_secret_value() == "shh"
    assert "shh" not in repr(config)
    assert config.environment == "staging"


def test_group_prefixes_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PROMPT_HTTP_CONNECT_TIMEOUT", "2.5")
    monkeypatch.setenv("PROMPT_CACHE_ENABLED", "false")
    monkeypatch.setenv("PROMPT_RETRY_MAX_RETRIES", "5")
    monkeypatch.setenv("PROMPT_TELEMETRY_ENABLED", "0")
    monkeypatch.setenv("PROMPT_LOG_LEVEL", "debug")

    assert HttpConfig().connect_timeout == 2.5
    assert CacheConfig().enabled is False
    assert RetryConfig().max_retries == 5
    assert TelemetryConfig().enabled is False
    assert LoggingConfig().level == LogLevel.DEBUG


def test_zero_refresh_buffer_is_valid():
    assert CredentialsConfig(token_refresh_buffer_seconds=0).token_refresh_buffer_seconds == 0


def test_negative_values_rejected():
    with pytest.raises(ValidationError):
        RetryConfig(max_retries=-1)
    with pytest.raises(ValidationError):
        CacheConfig(ttl_seconds=-1)
    with pytest.raises(ValidationError):
        HttpConfig(request_timeout=0)


def test_retry_max_delay_must_cover_base_delay():
    with pytest.raises(ValidationError, match="max_delay"):
        RetryConfig(base_delay=5.0, max_delay=1.0)


def test_settings_are_immutable():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.cache = CacheConfig(enabled=False)
    with pytest.raises(ValidationError):
        settings.cache.enabled = False


def test_get_settings_is_cached_and_reloadable(monkeypatch: pytest.MonkeyPatch):
    first = reload_settings()
    assert get_settings() is first
    monkeypatch.setenv("PROMPT_CACHE_TTL_SECONDS", "42")
    reloaded = reload_settings()
    assert reloaded is not first
    assert reloaded.cache.ttl_seconds == 42
    reload_settings()
