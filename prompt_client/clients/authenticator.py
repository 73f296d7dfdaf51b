"""Client-credentials token exchange with proactive, single-flight refresh."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import httpx
import structlog

from prompt_client.core.credentials import CredentialProvider
from prompt_client.core.errors import InvalidCredentialsError, TokenRefreshError
from prompt_client.core.metrics import prompt_client_token_refreshes_total
from prompt_client.utils.clock import utc_now
from prompt_client.utils.redaction import redact_token
from prompt_client.utils.single_flight import SingleFlight

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
_REJECTED_STATUSES = frozenset({401, 403})


@dataclass(frozen=True)
class AccessToken:
    value: str = field(repr=False)
    expires_at: datetime

    def is_usable(self, now: datetime, refresh_buffer: timedelta) -> bool:
        return now < self.expires_at - refresh_buffer


def _parse_expiry(payload: dict, now: datetime) -> datetime:
    expires_at = payload.get("expires_at")
    if expires_at:
        try:
            parsed = datetime.fromisoformat(str(expires_at).replace("Z", "+00:00"))
        except ValueError as e:
            raise TokenRefreshError(f"Token response has invalid expires_at: {expires_at!r}") from e
        if parsed.tzinfo is None:
            raise TokenRefreshError("Token response expires_at must carry a timezone")
        return parsed

    expires_in = payload.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS)
    try:
        seconds = float(expires_in)
    except (TypeError, ValueError) as e:
        raise TokenRefreshError(f"Token response has invalid expires_in: {expires_in!r}") from e
    return now + timedelta(seconds=seconds)


class TokenAuthenticator:
    """Owns the bearer token for one client instance.

    ``get_valid_token`` never hands out a token inside its refresh buffer.
    Concurrent callers that find the token stale share one exchange.
    """

    _FLIGHT_KEY = "token"

    def __init__(
        self,
        credentials: CredentialProvider,
        http_client: httpx.Client,
        *,
        refresh_buffer_seconds: float = 60.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if refresh_buffer_seconds < 0:
            raise ValueError("refresh_buffer_seconds must be >= 0")
        self._credentials = credentials
        self._http = http_client
        self._refresh_buffer = timedelta(seconds=refresh_buffer_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._token: AccessToken | None = None
        self._flight: SingleFlight[AccessToken] = SingleFlight()

    def get_valid_token(self) -> AccessToken:
        token = self._current()
        if token is not None:
            return token
        return self._flight.do(self._FLIGHT_KEY, self._refresh)

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a fresh exchange."""
        with self._lock:
            self._token = None

    def _current(self) -> AccessToken | None:
        with self._lock:
            token = self._token
        if token is not None and token.is_usable(self._clock(), self._refresh_buffer):
            return token
        return None

    def _refresh(self) -> AccessToken:
        # Another leader may have finished between our check and taking the flight.
        token = self._current()
        if token is not None:
            return token

        token = self._exchange()
        now = self._clock()
        if not token.is_usable(now, self._refresh_buffer):
            lifetime = (token.expires_at - now).total_seconds()
            buffer = self._refresh_buffer.total_seconds()
            logger.warning(
                "Issued token expires inside refresh buffer",
                lifetime_seconds=lifetime,
                refresh_buffer_seconds=buffer,
            )
            raise TokenRefreshError(
                f"Issued token lifetime {lifetime:.0f}s is within the "
                f"{buffer:.0f}s refresh buffer",
                details={"lifetime_seconds": lifetime, "refresh_buffer_seconds": buffer},
            )
        with self._lock:
            self._token = token
        return token

    def _exchange(self) -> AccessToken:
        auth_url = self._credentials.auth_url
        try:
            response = self._http.post(auth_url, json=self._credentials.token_request_body())
        except httpx.HTTPError as e:
            prompt_client_token_refreshes_total.labels(status="failed").inc()
            logger.warning("Token exchange transport failure", auth_url=auth_url, error=str(e))
            raise TokenRefreshError(f"Token exchange failed: {e}") from e

        if response.status_code in _REJECTED_STATUSES:
            prompt_client_token_refreshes_total.labels(status="rejected").inc()
            logger.error(
                "Token exchange rejected credentials",
                auth_url=auth_url,
                status_code=response.status_code,
            )
            raise InvalidCredentialsError(
                "Auth endpoint rejected the client credentials",
                status_code=response.status_code,
                request_id=response.headers.get("X-Request-ID"),
            )

        if not response.is_success:
            prompt_client_token_refreshes_total.labels(status="failed").inc()
            logger.warning(
                "Token exchange failed", auth_url=auth_url, status_code=response.status_code
            )
            raise TokenRefreshError(
                f"Token exchange failed with HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            prompt_client_token_refreshes_total.labels(status="failed").inc()
            raise TokenRefreshError("Token response is not valid JSON") from e

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            prompt_client_token_refreshes_total.labels(status="failed").inc()
            raise TokenRefreshError("Token response missing access_token")

        now = self._clock()
        token = AccessToken(value=str(access_token), expires_at=_parse_expiry(payload, now))
        prompt_client_token_refreshes_total.labels(status="success").inc()
        logger.info(
            "Token refreshed",
            credential_hint=redact_token(token.value),
            expires_at=token.expires_at.isoformat(),
        )
        return token
