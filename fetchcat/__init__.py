"""fetchcat: a configurable, retrying HTTP request executor."""

from fetchcat.request import (
    AlreadyExecutedError,
    AttemptError,
    ExecutorState,
    FetchcatError,
    HttpStatusError,
    InvalidArgumentError,
    MimeMismatchError,
    NotReadyError,
    ParseError,
    RequestExecutor,
    SerializationError,
    TransportError,
    TransportErrorCode,
    TransportOption,
)


__version__ = "0.1.0"

__all__ = [
    "RequestExecutor",
    "ExecutorState",
    "TransportOption",
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
    "__version__",
]
