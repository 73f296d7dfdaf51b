"""Opt-in structlog configuration for hosts embedding the prompt client.

The library only calls ``structlog.get_logger``; nothing is configured on
import. Hosts that have no logging setup of their own call
``setup_logging()`` once at startup.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

from prompt_client.core.config import LogFormat, Settings, get_settings
from prompt_client.utils.redaction import redact_headers


def redact_event_fields(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential-looking fields before any renderer sees them."""
    fields = {key: value for key, value in event_dict.items() if key != "event"}
    event_dict.update(redact_headers(fields))
    return event_dict


def setup_logging(settings: Settings | None = None, *, stream: TextIO | None = None) -> None:
    """Render prompt client logs as JSON or console lines at the configured level."""
    settings = settings or get_settings()
    level = getattr(logging, settings.logging.level.value)
    stream = stream or sys.stdout

    logging.basicConfig(format="%(message)s", stream=stream, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.format == LogFormat.JSON
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            redact_event_fields,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )
