"""Observability helpers: structured logging."""

from fetchcat.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
    redact_event,
)


__all__ = [
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
    "get_logger",
    "redact_event",
]
