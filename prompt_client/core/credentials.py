"""Credential store for the prompt service.

Only static key/secret credentials exist today. The authenticator depends on
the ``CredentialProvider`` protocol rather than the concrete class so that
other credential kinds can be added without touching it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from prompt_client.core.config import DEFAULT_ENVIRONMENT, CredentialsConfig
from prompt_client.core.errors import ConfigurationError

CLIENT_CREDENTIALS_GRANT = "client_credentials"


class CredentialProvider(Protocol):
    """What the authenticator needs from a credential kind."""

    @property
    def organization_id(self) -> str: ...

    @property
    def api_base_url(self) -> str: ...

    @property
    def auth_url(self) -> str: ...

    def token_request_body(self) -> dict[str, Any]:
        """Body posted to the auth endpoint to obtain a bearer token."""
        ...


@dataclass(frozen=True)
class StaticKeyCredentials:
    """Organization/key/secret identity plus the endpoints it is valid for."""

    organization_id: str
    key_id: str
    key_secret: str = field(repr=False)
    api_base_url: str
    auth_url: str
    environment: str = DEFAULT_ENVIRONMENT

    def __post_init__(self) -> None:
        required = {
            "organization_id": self.organization_id,
            "key_id": self.key_id,
            "key_secret": self.key_secret,
            "api_base_url": self.api_base_url,
            "auth_url": self.auth_url,
        }
        missing = [name for name, value in required.items() if not value or not value.strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required credential fields: {', '.join(missing)}",
                details={"missing_fields": missing},
            )
        for name in ("api_base_url", "auth_url"):
            url = getattr(self, name)
            if not url.startswith(("http://", "https://")):
                raise ConfigurationError(
                    f"{name} must be an http(s) URL",
                    details={"field": name},
                )

    @classmethod
    def from_config(cls, config: CredentialsConfig) -> StaticKeyCredentials:
        return cls(
            organization_id=config.organization_id,
            key_id=config.key_id,
            key_secret=config.key_secret.get_secret_value(),
            api_base_url=config.api_base_url.rstrip("/"),
            auth_url=config.auth_url,
            environment=config.environment or DEFAULT_ENVIRONMENT,
        )

    def token_request_body(self) -> dict[str, Any]:
        return {
            "grant_type": CLIENT_CREDENTIALS_GRANT,
            "client_id": self.key_id,
            "client_secret": self.key_secret,
            "organization_id": self.organization_id,
        }
