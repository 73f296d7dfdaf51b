"""Unit tests for errors module."""

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
    error_for_status,
    is_retryable,
)


def test_prompt_client_error_base():
    error = PromptClientError("test message")
    assert error.message == "test message"
    assert error.code == "PROMPT_CLIENT_ERROR"
    assert error.details is None


def test_error_with_details():
    error = ConfigurationError("error", details={"field": "value"})
    assert error.details == {"field": "value"}
    assert isinstance(error, PromptClientError)


def test_api_error_carries_status_code_and_request_id():
    error = NotFoundError("missing", error_code="PROMPT_NOT_FOUND", request_id="req-1")
    assert error.status_code == 404
    assert error.error_code == "PROMPT_NOT_FOUND"
    assert error.request_id == "req-1"
    assert "request_id=req-1" in str(error)
    assert "status=404" in str(error)


def test_explicit_status_overrides_default():
    error = ServerError("bad gateway", status_code=502)
    assert error.status_code == 502


def test_rate_limit_error_keeps_retry_after():
    error = RateLimitError("slow down", retry_after=2.0)
    assert error.status_code == 429
    assert error.retry_after == 2.0


def test_error_for_status():
    assert error_for_status(401) is AuthenticationError
    assert error_for_status(403) is AuthorizationError
    assert error_for_status(404) is NotFoundError
    assert error_for_status(409) is ConflictError
    assert error_for_status(429) is RateLimitError
    assert error_for_status(500) is ServerError
    assert error_for_status(503) is ServerError
    assert error_for_status(422) is APIError


def test_is_retryable():
    assert is_retryable(APIConnectionError("down"))
    assert is_retryable(APITimeoutError("slow"))
    assert is_retryable(ServerError("boom"))
    assert is_retryable(RateLimitError("throttled"))
    assert is_retryable(TokenRefreshError("auth down"))
    assert not is_retryable(NotFoundError("nope"))
    assert not is_retryable(AuthenticationError("nope"))
    assert not is_retryable(InvalidCredentialsError("nope"))
    assert not is_retryable(ConflictError("nope"))
    assert not is_retryable(ValidationError("nope"))
    assert not is_retryable(ValueError("unrelated"))


def test_render_error_lists_missing_variables():
    error = RenderError("missing", missing_variables=["b", "c"])
    assert error.missing_variables == ["b", "c"]
    assert error.details == {"missing_variables": ["b", "c"]}
    assert isinstance(error, ResourceError)


def test_no_production_version_is_not_a_not_found_error():
    error = NoProductionVersionError("none", prompt_name="greeting", request_id="r-1")
    assert isinstance(error, ResourceError)
    assert not isinstance(error, NotFoundError)
    assert error.prompt_name == "greeting"
    assert error.request_id == "r-1"
