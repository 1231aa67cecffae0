"""Shared fixtures for the fetchcat test suite."""

import logging
from collections.abc import Generator

import pytest
import structlog

from fetchcat.observability.logging import clear_request_context
from fetchcat.request.metrics import RequestMetrics


@pytest.fixture(autouse=True)
def _isolate_process_state() -> Generator[None]:
    """Reset process-wide metrics and logging configuration around each test."""
    RequestMetrics.reset()
    yield
    RequestMetrics.reset()
    clear_request_context()
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
