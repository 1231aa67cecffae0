"""Retrying HTTP request executor.

This module provides a fluent request builder with:
- Query-parameter merging that preserves URL fragments
- Bounded whole-request retries with an ordered attempt-error log
- Response size caps that abort rather than truncate
- Response header capture that keeps only the final redirect hop
- Metrics collection for observability
"""

from fetchcat.request.capture import (
    BufferSink,
    CappedBufferSink,
    HeaderCapture,
    make_body_sink,
)
from fetchcat.request.constants import (
    DEFAULT_CHUNK_SIZE,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    TYPE_JSON,
    UNBOUNDED_SIZE,
)
from fetchcat.request.errors import (
    AlreadyExecutedError,
    AttemptError,
    FetchcatError,
    HttpStatusError,
    InvalidArgumentError,
    MimeMismatchError,
    NotReadyError,
    ParseError,
    SerializationError,
    TransportError,
    TransportErrorCode,
)
from fetchcat.request.executor import RequestExecutor, parse_json
from fetchcat.request.metrics import RequestMetrics
from fetchcat.request.models import (
    AttemptResult,
    BodyKind,
    RequestBody,
    ResponseInfo,
    TransportOption,
)
from fetchcat.request.state_machine import (
    ExecutorState,
    ExecutorStateMachine,
    ExecutorStateTransitionError,
)
from fetchcat.request.urls import build_url, encode_params


__all__ = [
    # Executor
    "RequestExecutor",
    "parse_json",
    # State
    "ExecutorState",
    "ExecutorStateMachine",
    "ExecutorStateTransitionError",
    # Capture
    "HeaderCapture",
    "BufferSink",
    "CappedBufferSink",
    "make_body_sink",
    # Models
    "AttemptResult",
    "BodyKind",
    "RequestBody",
    "ResponseInfo",
    "TransportOption",
    # Errors
    "FetchcatError",
    "InvalidArgumentError",
    "AlreadyExecutedError",
    "NotReadyError",
    "SerializationError",
    "AttemptError",
    "TransportError",
    "TransportErrorCode",
    "HttpStatusError",
    "ParseError",
    "MimeMismatchError",
    # URLs
    "build_url",
    "encode_params",
    # Constants
    "HTTP_STATUS_OK_MIN",
    "HTTP_STATUS_OK_MAX",
    "TYPE_JSON",
    "UNBOUNDED_SIZE",
    "DEFAULT_CHUNK_SIZE",
    # Metrics
    "RequestMetrics",
]
