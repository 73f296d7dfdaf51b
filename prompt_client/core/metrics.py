"""Prometheus metrics for the prompt client."""

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# HTTP transport
# ---------------------------------------------------------------------------

prompt_client_http_requests_total = Counter(
    "prompt_client_http_requests_total",
    "Total HTTP attempts against the prompt service",
    ["method", "status"],  # status: HTTP code | connection_error | timeout
)

prompt_client_http_latency_seconds = Histogram(
    "prompt_client_http_latency_seconds",
    "Per-attempt HTTP latency in seconds",
    ["method"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

prompt_client_retries_total = Counter(
    "prompt_client_retries_total",
    "Total retried attempts",
    ["reason"],
)

# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

prompt_client_token_refreshes_total = Counter(
    "prompt_client_token_refreshes_total",
    "Total client-credentials token exchanges",
    ["status"],  # success | rejected | failed
)

# ---------------------------------------------------------------------------
# Version cache
# ---------------------------------------------------------------------------

prompt_client_cache_lookups_total = Counter(
    "prompt_client_cache_lookups_total",
    "Version cache lookups",
    ["result"],  # hit | miss | bypass
)
