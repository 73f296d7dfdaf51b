"""HTTP transport for the prompt service.

Every logical call gets one correlation id shared by all of its attempts.
Connection failures, 5xx and 429 responses are retried with equal-jitter
exponential backoff; a 429 ``Retry-After`` hint replaces the computed wait.
Each attempt, body included, must finish within ``request_timeout``.
"""

from __future__ import annotations

import json as jsonlib
import random
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

import httpx
import structlog
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt

from prompt_client.clients.authenticator import TokenAuthenticator
from prompt_client.core.config import HttpConfig, RetryConfig
from prompt_client.core.credentials import StaticKeyCredentials
from prompt_client.core.errors import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AuthenticationError,
    PromptClientError,
    RateLimitError,
    ValidationError,
    error_for_status,
    is_retryable,
)
from prompt_client.core.hooks import (
    ErrorRecord,
    RequestRecord,
    ResponseRecord,
    TelemetryDispatcher,
    freeze_headers,
)
from prompt_client.core.metrics import (
    prompt_client_http_latency_seconds,
    prompt_client_http_requests_total,
    prompt_client_retries_total,
)
from prompt_client.core.tracing import (
    bind_contextvars_to_logging,
    get_tracing_headers,
    new_correlation_id,
)
from prompt_client.utils.clock import monotonic, utc_now

logger = structlog.get_logger(__name__)

T = TypeVar("T")

REQUEST_ID_HEADER = "X-Request-ID"
ORGANIZATION_HEADER = "X-Organization-ID"
ENVIRONMENT_HEADER = "X-Environment"


def build_http_client(config: HttpConfig, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Create the shared HTTP client.

    httpx bounds each phase separately; the whole-attempt deadline is
    enforced by ``Transport`` while it streams the body.
    """
    timeout = httpx.Timeout(config.request_timeout, connect=config.connect_timeout)
    return httpx.Client(timeout=timeout, transport=transport, trust_env=False)


def parse_retry_after(value: Any, now: datetime | None = None) -> float | None:
    """Parse a Retry-After value given in seconds or as an HTTP-date."""
    if value is None or value == "":
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        pass
    try:
        when = parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None
    now = now or utc_now()
    return max(0.0, (when - now).total_seconds())


def _parse_error_body(response: httpx.Response, raw: bytes | None = None) -> dict[str, Any]:
    try:
        body = jsonlib.loads(response.content if raw is None else raw)
    except ValueError:
        return {}
    if not isinstance(body, dict):
        return {}
    error = body.get("error")
    if isinstance(error, dict):
        return {**body, **error}
    return body


def error_from_response(
    response: httpx.Response, correlation_id: str, *, body: bytes | None = None
) -> APIError:
    """Classify a non-2xx response into the API error taxonomy.

    ``body`` is the already-read payload of a streamed response.
    """
    payload = _parse_error_body(response, body)
    error_cls = error_for_status(response.status_code)
    message = str(payload.get("message") or f"HTTP {response.status_code}")
    kwargs: dict[str, Any] = {
        "status_code": response.status_code,
        "error_code": payload.get("code") if isinstance(payload.get("code"), str) else None,
        "request_id": payload.get("request_id")
        or response.headers.get(REQUEST_ID_HEADER)
        or correlation_id,
    }
    if error_cls is RateLimitError:
        kwargs["retry_after"] = parse_retry_after(
            response.headers.get("Retry-After", payload.get("retry_after"))
        )
    return error_cls(message, **kwargs)


class Transport:
    """Executes authenticated requests with retry, classification and hooks."""

    def __init__(
        self,
        credentials: StaticKeyCredentials,
        authenticator: TokenAuthenticator,
        dispatcher: TelemetryDispatcher,
        http_client: httpx.Client,
        retry_config: RetryConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = monotonic,
        jitter: Callable[[], float] = random.random,
        request_timeout: float | None = None,
    ) -> None:
        self._credentials = credentials
        self._authenticator = authenticator
        self._dispatcher = dispatcher
        self._http = http_client
        self._retry = retry_config
        self._sleep = sleep
        self._clock = clock
        self._jitter = jitter
        self._request_timeout = request_timeout

    def execute(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        parse: Callable[[Any], T] | None = None,
        translate_error: Callable[[APIError], PromptClientError] | None = None,
    ) -> Any:
        """Run one logical call and return the decoded body.

        ``parse`` converts a successful body and ``translate_error`` may
        replace a terminal API error with a domain error. Both run inside the
        call so their failures reach the ``on_error`` hooks like any other.
        Every exception leaving this method is a ``PromptClientError``.
        """
        correlation_id = new_correlation_id()
        url = f"{self._credentials.api_base_url}/{path.lstrip('/')}"
        started = self._clock()
        log = logger.bind(
            correlation_id=correlation_id,
            method=method,
            path=path,
            **bind_contextvars_to_logging(),
        )

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._retry.max_retries + 1),
                wait=self._compute_wait,
                retry=retry_if_exception(is_retryable),
                sleep=self._sleep,
                before_sleep=self._log_retry(log),
                reraise=True,
            ):
                with attempt:
                    result = self._send_once(
                        method,
                        url,
                        params=params,
                        json=json,
                        correlation_id=correlation_id,
                        attempt_number=attempt.retry_state.attempt_number,
                    )
            if parse is not None:
                result = parse(result)
        except Exception as e:
            error = self._terminal_error(e, translate_error)
            elapsed = self._clock() - started
            log.warning(
                "Prompt service call failed", error=str(error), error_type=type(error).__name__
            )
            self._dispatcher.on_error(
                ErrorRecord(correlation_id=correlation_id, error=error, elapsed=elapsed)
            )
            if error is e:
                raise
            raise error from e

        return result

    @staticmethod
    def _terminal_error(
        error: Exception,
        translate_error: Callable[[APIError], PromptClientError] | None,
    ) -> PromptClientError:
        if isinstance(error, APIError) and translate_error is not None:
            return translate_error(error)
        if isinstance(error, PromptClientError):
            return error
        return PromptClientError(
            f"Unexpected error during prompt service call: {error}",
            details={"error_type": type(error).__name__},
        )

    def backoff_delay(self, attempt_number: int) -> float:
        """Equal-jitter exponential backoff after the given failed attempt."""
        ceiling = min(self._retry.max_delay, self._retry.base_delay * 2 ** (attempt_number - 1))
        half = ceiling / 2
        return half + self._jitter() * half

    def _compute_wait(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return error.retry_after
        return self.backoff_delay(retry_state.attempt_number)

    def _log_retry(self, log: Any) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            reason = type(error).__name__ if error else "unknown"
            prompt_client_retries_total.labels(reason=reason).inc()
            log.info(
                "Retrying prompt service call",
                attempt=retry_state.attempt_number,
                wait_seconds=round(retry_state.next_action.sleep, 3)
                if retry_state.next_action
                else None,
                reason=reason,
            )

        return before_sleep

    def _build_headers(self, token: str, correlation_id: str) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
            ORGANIZATION_HEADER: self._credentials.organization_id,
            ENVIRONMENT_HEADER: self._credentials.environment,
        }
        headers.update(get_tracing_headers())
        headers[REQUEST_ID_HEADER] = correlation_id
        return headers

    def _send_once(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None,
        json: Any,
        correlation_id: str,
        attempt_number: int,
    ) -> Any:
        token = self._authenticator.get_valid_token()
        request = self._http.build_request(
            method,
            url,
            params=dict(params) if params else None,
            json=json,
            headers=self._build_headers(token.value, correlation_id),
        )
        self._dispatcher.before_request(
            RequestRecord(
                correlation_id=correlation_id,
                method=method,
                url=str(request.url),
                headers=freeze_headers(request.headers),
                attempt=attempt_number,
            )
        )

        started = self._clock()
        deadline = started + self._request_timeout if self._request_timeout else None
        try:
            response = self._http.send(request, stream=True)
        except httpx.RequestError as e:
            raise self._request_error(e, method, url) from e

        body_error: PromptClientError | None = None
        body = b""
        try:
            body = self._read_body(response, deadline, url)
        except PromptClientError as e:
            body_error = e
        finally:
            response.close()
        elapsed = self._clock() - started

        prompt_client_http_requests_total.labels(
            method=method, status=str(response.status_code)
        ).inc()
        prompt_client_http_latency_seconds.labels(method=method).observe(elapsed)
        self._dispatcher.after_response(
            ResponseRecord(
                correlation_id=correlation_id,
                status_code=response.status_code,
                headers=freeze_headers(response.headers),
                elapsed=elapsed,
                attempt=attempt_number,
            )
        )
        if body_error is not None:
            raise body_error

        if response.is_success:
            return self._parse_success(body, response.status_code, correlation_id)

        error = error_from_response(response, correlation_id, body=body)
        if isinstance(error, AuthenticationError):
            self._authenticator.invalidate()
        raise error

    def _read_body(self, response: httpx.Response, deadline: float | None, url: str) -> bytes:
        """Read the streamed body, enforcing the per-attempt wall-clock deadline."""
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                self._check_deadline(deadline, url)
        except httpx.RequestError as e:
            raise self._request_error(e, response.request.method, url, counted=True) from e
        self._check_deadline(deadline, url)
        return b"".join(chunks)

    def _check_deadline(self, deadline: float | None, url: str) -> None:
        if deadline is not None and self._clock() > deadline:
            raise APITimeoutError(
                f"Response not complete within {self._request_timeout}s",
                details={"url": url, "timeout": self._request_timeout},
            )

    @staticmethod
    def _request_error(
        error: httpx.RequestError, method: str, url: str, *, counted: bool = False
    ) -> PromptClientError:
        """Map an httpx request failure onto the client error taxonomy."""
        if isinstance(error, httpx.DecodingError):
            status = "decoding_error"
            mapped: PromptClientError = ValidationError(
                f"Prompt service response could not be decoded: {error}",
                details={"url": url},
            )
        elif isinstance(error, httpx.TimeoutException):
            status = "timeout"
            mapped = APITimeoutError(f"Request timed out: {error}", details={"url": url})
        else:
            status = "connection_error"
            mapped = APIConnectionError(f"Connection error: {error}", details={"url": url})
        if not counted:
            prompt_client_http_requests_total.labels(method=method, status=status).inc()
        return mapped

    @staticmethod
    def _parse_success(body: bytes, status_code: int, correlation_id: str) -> Any:
        if not body:
            return {}
        try:
            return jsonlib.loads(body)
        except ValueError as e:
            raise ValidationError(
                "Prompt service returned a malformed JSON body",
                details={"request_id": correlation_id, "status_code": status_code},
            ) from e
