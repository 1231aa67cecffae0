"""Data models for the request executor."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from fetchcat.request.errors import AttemptError


class TransportOption(str, Enum):
    """Identifiers for transport-level request options.

    - METHOD: Request method name
    - URL: Fully built request URL
    - BODY: RequestBody (or raw str/bytes, or a mapping of form fields)
    - TIMEOUT: Per-operation (connect, read, write, pool) timeout in seconds
    - TIMEOUT_MS: Per-operation timeout in milliseconds
    - ENCODING: Accept-Encoding value ("" for every supported encoding)
    - SSL_VERIFY_PEER: Whether to verify the server certificate
    - CA_INFO: Path to a CA bundle used for verification
    - FOLLOW_LOCATION: Whether redirects are followed
    - MAX_REDIRECTS: Maximum number of redirects to follow
    - VERBOSE: Log every request and response hop
    """

    METHOD = "METHOD"
    URL = "URL"
    BODY = "BODY"
    TIMEOUT = "TIMEOUT"
    TIMEOUT_MS = "TIMEOUT_MS"
    ENCODING = "ENCODING"
    SSL_VERIFY_PEER = "SSL_VERIFY_PEER"
    CA_INFO = "CA_INFO"
    FOLLOW_LOCATION = "FOLLOW_LOCATION"
    MAX_REDIRECTS = "MAX_REDIRECTS"
    VERBOSE = "VERBOSE"


class BodyKind(str, Enum):
    """How a request body is handed to the transport.

    - FORM: Structured fields, sent as multipart/form-data
    - URLENCODED: Pre-encoded application/x-www-form-urlencoded string
    - RAW: Arbitrary string payload
    """

    FORM = "FORM"
    URLENCODED = "URLENCODED"
    RAW = "RAW"


@dataclass(frozen=True)
class RequestBody:
    """Request payload together with its encoding kind."""

    kind: BodyKind
    payload: str | bytes | Mapping[str, Any]

    @classmethod
    def coerce(cls, value: Any) -> "RequestBody":
        """Normalize a BODY option value set through setopt().

        Args:
            value: RequestBody, str/bytes payload, or mapping of form fields.

        Returns:
            RequestBody instance.

        Raises:
            TypeError: If the value cannot be sent as a body.
        """
        if isinstance(value, RequestBody):
            return value
        if isinstance(value, str | bytes):
            return cls(kind=BodyKind.RAW, payload=value)
        if isinstance(value, Mapping):
            return cls(kind=BodyKind.FORM, payload=value)
        msg = f"Unsupported body type: {type(value).__name__}"
        raise TypeError(msg)


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of a single attempt: a body on success, an error otherwise."""

    body: str = ""
    error: AttemptError | None = None

    @property
    def is_success(self) -> bool:
        """Check if the attempt succeeded."""
        return self.error is None


class ResponseInfo(BaseModel):
    """Snapshot of the last response observed by the executor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: Annotated[int, Field(ge=0, le=999)] = 0
    content_type: str = ""
    final_url: str = ""
    http_version: str = ""
    redirect_count: Annotated[int, Field(ge=0)] = 0
    elapsed_ms: Annotated[float, Field(ge=0.0)] = 0.0
    body_bytes: Annotated[int, Field(ge=0)] = 0
