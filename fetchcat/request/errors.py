"""Error types for the request executor.

Configuration and lifecycle errors are raised immediately. Attempt errors
are collected per attempt by the retry loop and only the last one
propagates to the caller.
"""

from enum import Enum


class FetchcatError(Exception):
    """Base exception for all fetchcat errors."""


class InvalidArgumentError(FetchcatError, ValueError):
    """A configuration value is out of its domain."""


class AlreadyExecutedError(FetchcatError):
    """The executor has already left the configuring state."""


class NotReadyError(FetchcatError):
    """A response accessor was called before execution started."""


class SerializationError(FetchcatError):
    """The request body could not be encoded as JSON."""


class ParseError(FetchcatError):
    """The response body is not a JSON object or array."""


class MimeMismatchError(FetchcatError):
    """The response content type is not JSON.

    Attributes:
        mime: Content type reported by the response.
    """

    def __init__(self, mime: str) -> None:
        super().__init__(f"invalid json mime {mime!r}")
        self.mime = mime


class TransportErrorCode(str, Enum):
    """Classification of transport-level attempt failures.

    - TIMEOUT: Connect, read, write or pool timeout
    - CONNECT: Could not establish a connection
    - SSL: Certificate verification or TLS handshake failure
    - TOO_MANY_REDIRECTS: Redirect chain longer than max_redirects
    - INVALID_URL: Missing, malformed or unsupported URL
    - PROTOCOL: Malformed or unexpected HTTP exchange
    - WRITE_ABORTED: Body sink refused a chunk (response size cap)
    - HEADER_ABORTED: Header sink did not consume a full line
    - UNKNOWN: Unclassified transport error
    """

    TIMEOUT = "TIMEOUT"
    CONNECT = "CONNECT"
    SSL = "SSL"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    INVALID_URL = "INVALID_URL"
    PROTOCOL = "PROTOCOL"
    WRITE_ABORTED = "WRITE_ABORTED"
    HEADER_ABORTED = "HEADER_ABORTED"
    UNKNOWN = "UNKNOWN"


class AttemptError(FetchcatError):
    """Base class for failures of a single attempt.

    Attempt errors are retried according to the executor's retry policy
    and recorded in its attempt-error log.
    """

    kind = "attempt"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str | int]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {"kind": self.kind, "message": self.message}


class TransportError(AttemptError):
    """Network, TLS or protocol failure during a round trip.

    Attributes:
        code: Classification of the failure.
    """

    kind = "transport"

    def __init__(self, code: TransportErrorCode, message: str) -> None:
        super().__init__(f"transport error ({code.value}): {message}")
        self.code = code
        self.detail = message

    def to_dict(self) -> dict[str, str | int]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation including the error code.
        """
        data = super().to_dict()
        data["code"] = self.code.value
        return data


class HttpStatusError(AttemptError):
    """The final response status is outside the 2xx range.

    Attributes:
        status_code: HTTP status code of the final response.
    """

    kind = "http_status"

    def __init__(self, status_code: int) -> None:
        super().__init__(f"response code {status_code}")
        self.status_code = status_code

    def to_dict(self) -> dict[str, str | int]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation including the status code.
        """
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data
