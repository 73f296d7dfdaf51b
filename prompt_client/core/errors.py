"""Prompt client error hierarchy."""

from typing import Any


class PromptClientError(Exception):
    """Base exception for prompt client errors."""

    code = "PROMPT_CLIENT_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(PromptClientError):
    """Client configuration is incomplete or invalid."""

    code = "PROMPT_CLIENT_CONFIGURATION_ERROR"


# ---------------------------------------------------------------------------
# API errors: the service answered with a non-2xx status
# ---------------------------------------------------------------------------


class APIError(PromptClientError):
    """Non-success response from the prompt service."""

    code = "PROMPT_CLIENT_API_ERROR"
    default_status_code: int | None = None

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=details)
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.error_code = error_code
        self.request_id = request_id

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.error_code:
            parts.append(f"code={self.error_code}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " ".join(parts)


class AuthenticationError(APIError):
    """Bearer token rejected."""

    code = "PROMPT_CLIENT_AUTHENTICATION_ERROR"
    default_status_code = 401


class InvalidCredentialsError(AuthenticationError):
    """The auth endpoint rejected the client credentials."""

    code = "PROMPT_CLIENT_INVALID_CREDENTIALS"


class AuthorizationError(APIError):
    """Access forbidden for the authenticated identity."""

    code = "PROMPT_CLIENT_AUTHORIZATION_ERROR"
    default_status_code = 403


class NotFoundError(APIError):
    """Prompt name is unknown to the service."""

    code = "PROMPT_CLIENT_NOT_FOUND"
    default_status_code = 404


class ConflictError(APIError):
    code = "PROMPT_CLIENT_CONFLICT"
    default_status_code = 409


class RateLimitError(APIError):
    """Request was throttled; ``retry_after`` carries the server hint in seconds."""

    code = "PROMPT_CLIENT_RATE_LIMITED"
    default_status_code = 429

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        status_code: int | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            error_code=error_code,
            request_id=request_id,
            details=details,
        )
        self.retry_after = retry_after


class ServerError(APIError):
    code = "PROMPT_CLIENT_SERVER_ERROR"
    default_status_code = 500


# ---------------------------------------------------------------------------
# Transport-level failures
# ---------------------------------------------------------------------------


class APIConnectionError(PromptClientError):
    """The request never produced an HTTP response."""

    code = "PROMPT_CLIENT_CONNECTION_ERROR"


class APITimeoutError(APIConnectionError):
    code = "PROMPT_CLIENT_TIMEOUT"


class TokenRefreshError(PromptClientError):
    """Token exchange failed for a reason other than rejected credentials.

    Retryable: the transport treats it like a connection failure.
    """

    code = "PROMPT_CLIENT_TOKEN_REFRESH_FAILED"


# ---------------------------------------------------------------------------
# Resource errors: the request succeeded but the result is unusable
# ---------------------------------------------------------------------------


class ResourceError(PromptClientError):
    code = "PROMPT_CLIENT_RESOURCE_ERROR"


class ValidationError(ResourceError):
    """Invalid arguments or malformed payload."""

    code = "PROMPT_CLIENT_VALIDATION_ERROR"


class RenderError(ResourceError):
    """Template rendering failed because variables were not supplied."""

    code = "PROMPT_CLIENT_RENDER_ERROR"

    def __init__(
        self,
        message: str,
        missing_variables: list[str],
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message, details={**(details or {}), "missing_variables": list(missing_variables)}
        )
        self.missing_variables = list(missing_variables)


class NoProductionVersionError(ResourceError):
    """The prompt exists but no version is currently marked as production."""

    code = "PROMPT_CLIENT_NO_PRODUCTION_VERSION"

    def __init__(
        self,
        message: str,
        prompt_name: str,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details={**(details or {}), "prompt_name": prompt_name})
        self.prompt_name = prompt_name
        self.request_id = request_id


ERROR_STATUS_MAP: dict[int, type[APIError]] = {
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitError,
}

RETRYABLE_ERRORS: tuple[type[PromptClientError], ...] = (
    APIConnectionError,
    ServerError,
    RateLimitError,
    TokenRefreshError,
)


def error_for_status(status_code: int) -> type[APIError]:
    """Get the error class for a non-2xx HTTP status."""
    if status_code >= 500:
        return ServerError
    return ERROR_STATUS_MAP.get(status_code, APIError)


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, RETRYABLE_ERRORS)
