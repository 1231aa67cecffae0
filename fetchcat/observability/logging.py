"""Structured logging configuration."""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

from fetchcat.request.redact import (
    REDACTED_VALUE,
    is_sensitive_header,
    redact_url_credentials,
)


def redact_event(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Scrub credentials from header and URL fields of a log event.

    Header fields may be mappings or [name, value] pair lists; both are
    rewritten with sensitive values replaced.
    """
    for key in ("url", "final_url"):
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = redact_url_credentials(value)

    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: REDACTED_VALUE if is_sensitive_header(name) else value
            for name, value in headers.items()
        }
    elif isinstance(headers, list):
        event_dict["headers"] = [
            [pair[0], REDACTED_VALUE if is_sensitive_header(pair[0]) else pair[1]]
            for pair in headers
        ]
    return event_dict


def configure_logging(
    level: int | str = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for executors and the CLI.

    Args:
        level: Logging level, as a number or a name such as "DEBUG".
        output: Output stream (default: stderr).
        json_format: Whether to render JSON instead of console output.
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_event,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=output, level=level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_request_context(request_id: str) -> None:
    """Tag all subsequent log events with a request identifier.

    Args:
        request_id: Caller-chosen identifier for the logical request.
    """
    structlog.contextvars.bind_contextvars(request_id=request_id)


def clear_request_context() -> None:
    """Remove the request identifier from log events."""
    structlog.contextvars.unbind_contextvars("request_id")
