"""Configuration management for the prompt client.

Configuration is loaded from environment variables. Each concern lives in its
own settings group with a dedicated prefix, mirroring the deployment keys the
surrounding tooling supplies.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENVIRONMENT = "production"


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(StrEnum):
    JSON = "json"
    CONSOLE = "console"


class CredentialsConfig(BaseSettings):
    """Identity and endpoints presented to the prompt service."""

    organization_id: str = Field(default="")
    key_id: str = Field(default="")
    key_secret: SecretStr = Field(default=SecretStr(""))
    api_base_url: str = Field(default="")
    auth_url: str = Field(default="")
    environment: str = Field(default=DEFAULT_ENVIRONMENT)
    token_refresh_buffer_seconds: float = Field(default=60.0, ge=0.0)

    model_config = SettingsConfigDict(env_prefix="PROMPT_", frozen=True)

    @field_validator("organization_id", "key_id", "api_base_url", "auth_url", mode="after")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()


class HttpConfig(BaseSettings):
    request_timeout: float = Field(default=30.0, gt=0.0)
    connect_timeout: float = Field(default=10.0, gt=0.0)

    model_config = SettingsConfigDict(env_prefix="PROMPT_HTTP_", frozen=True)


class CacheConfig(BaseSettings):
    enabled: bool = Field(default=True)
    ttl_seconds: float = Field(default=300.0, ge=0.0)

    model_config = SettingsConfigDict(env_prefix="PROMPT_CACHE_", frozen=True)


class RetryConfig(BaseSettings):
    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=0.5, ge=0.0)
    max_delay: float = Field(default=30.0, ge=0.0)

    model_config = SettingsConfigDict(env_prefix="PROMPT_RETRY_", frozen=True)

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> RetryConfig:
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"retry max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        return self


class TelemetryConfig(BaseSettings):
    enabled: bool = Field(default=True)
    service_name: str = Field(default="prompt-client")

    model_config = SettingsConfigDict(env_prefix="PROMPT_TELEMETRY_", frozen=True)


class LoggingConfig(BaseSettings):
    level: LogLevel = Field(default=LogLevel.INFO)
    format: LogFormat = Field(default=LogFormat.JSON)

    model_config = SettingsConfigDict(env_prefix="PROMPT_LOG_", frozen=True)

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str | LogLevel) -> LogLevel:
        if isinstance(v, LogLevel):
            return v
        return LogLevel(v.upper())


class Settings(BaseSettings):
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_prefix="PROMPT_", frozen=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()
