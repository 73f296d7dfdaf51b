"""Ambient tracing context propagated to outbound prompt service calls.

Hosts that already carry a request id or W3C traceparent (for example a web
request handler) set it here; the transport forwards it on every attempt so
that server-side logs line up with the caller's.
"""

import uuid
from contextvars import ContextVar
from typing import Any

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
trace_parent_ctx: ContextVar[str | None] = ContextVar("trace_parent", default=None)


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_ctx.get()


def set_request_id(value: str | None) -> None:
    """Set the request ID in context."""
    if value is None:
        value = new_correlation_id()
    request_id_ctx.set(value)


def get_trace_parent() -> str | None:
    return trace_parent_ctx.get()


def set_trace_parent(value: str | None) -> None:
    trace_parent_ctx.set(value or None)


def clear_tracing_context() -> None:
    request_id_ctx.set(None)
    trace_parent_ctx.set(None)


def get_tracing_headers() -> dict[str, str]:
    """Get ambient tracing headers for outbound requests.

    The transport sets its own ``X-Request-ID`` per logical call, so the
    ambient request id travels as ``X-Parent-Request-ID``.
    """
    headers: dict[str, str] = {}

    if rid := request_id_ctx.get():
        headers["X-Parent-Request-ID"] = rid

    if tp := trace_parent_ctx.get():
        headers["traceparent"] = tp

    return headers


def bind_contextvars_to_logging() -> dict[str, Any]:
    """Get all tracing contextvars as a dict for structlog binding."""
    context: dict[str, Any] = {}
    if rid := request_id_ctx.get():
        context["request_id"] = rid
    if tp := trace_parent_ctx.get():
        context["trace_parent"] = tp
    return context
