"""Client library for a remote prompt management service."""

from prompt_client.client import PromptClient, configure, get_client, reset_client
from prompt_client.core.config import Settings, get_settings
from prompt_client.core.errors import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    InvalidCredentialsError,
    NoProductionVersionError,
    NotFoundError,
    PromptClientError,
    RateLimitError,
    RenderError,
    ResourceError,
    ServerError,
    TokenRefreshError,
    ValidationError,
)
from prompt_client.core.hooks import ErrorRecord, RequestRecord, ResponseRecord
from prompt_client.core.logging import setup_logging
from prompt_client.prompts.models import (
    LATEST_LABEL,
    PRODUCTION_LABEL,
    PromptStatus,
    PromptType,
    PromptVersion,
)

__all__ = [
    "PromptClient",
    "configure",
    "get_client",
    "reset_client",
    "Settings",
    "get_settings",
    "setup_logging",
    "PromptVersion",
    "PromptStatus",
    "PromptType",
    "PRODUCTION_LABEL",
    "LATEST_LABEL",
    "RequestRecord",
    "ResponseRecord",
    "ErrorRecord",
    "PromptClientError",
    "ConfigurationError",
    "APIError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "ServerError",
    "APIConnectionError",
    "APITimeoutError",
    "TokenRefreshError",
    "ResourceError",
    "ValidationError",
    "RenderError",
    "NoProductionVersionError",
]
