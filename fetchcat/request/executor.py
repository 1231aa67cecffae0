"""Retrying HTTP request builder and executor."""

import json
import time
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from fetchcat.request.capture import HeaderCapture, make_body_sink
from fetchcat.request.constants import (
    HEADER_CONTENT_TYPE,
    HEADER_USER_AGENT,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    METHOD_DELETE,
    METHOD_GET,
    METHOD_PATCH,
    METHOD_POST,
    METHOD_PUT,
    TYPE_JSON,
    UNBOUNDED_SIZE,
)
from fetchcat.request.errors import (
    AttemptError,
    HttpStatusError,
    InvalidArgumentError,
    MimeMismatchError,
    ParseError,
    SerializationError,
    TransportError,
)
from fetchcat.request.metrics import RequestMetrics
from fetchcat.request.models import (
    AttemptResult,
    BodyKind,
    RequestBody,
    ResponseInfo,
    TransportOption,
)
from fetchcat.request.redact import redact_url_credentials
from fetchcat.request.state_machine import ExecutorState, ExecutorStateMachine
from fetchcat.request.transport import TransportSession, prepare_request
from fetchcat.request.urls import build_url
from fetchcat.settings import FetchcatSettings, get_settings


logger = structlog.get_logger()


class RequestExecutor:
    """Fluent HTTP request builder that executes once with bounded retries.

    Configure the request with the chainable setters, then call fetch()
    or fetch_json() exactly once. Each attempt is a whole-request round
    trip; failed attempts are recorded in order and only the last failure
    propagates. Response accessors become legal as soon as execution has
    started, whatever its outcome.

    Example:
        with RequestExecutor() as req:
            data = (
                req.post()
                .url("https://api.example.com/items", {"page": 2})
                .header("Authorization", "Bearer token")
                .body_json({"name": "x"})
                .retry(3, 500)
                .fetch_json(check_mime=True)
            )
    """

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        settings: FetchcatSettings | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Optional connection layer handed to httpx
                (e.g. httpx.MockTransport in tests).
            settings: Settings override; read from the environment if omitted.
        """
        self._transport = transport
        self._settings = settings or get_settings()
        self._session = TransportSession(transport)

        self._headers: dict[str, str] = {}
        self._options: dict[TransportOption, Any] = {}
        self._ignore_status = False
        self._retry_times = 1
        self._retry_interval_ms = 0
        self._max_response_bytes = UNBOUNDED_SIZE

        self._metrics = RequestMetrics.get_instance()
        self._log = logger.bind(component="request")
        self._reset()

    def _reset(self) -> None:
        self._machine = ExecutorStateMachine()
        self._attempts = 0
        self._capture = HeaderCapture()
        self._errors: list[AttemptError] = []
        self._body = ""

    # lifecycle

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __copy__(self) -> "RequestExecutor":
        return self.clone()

    def close(self) -> None:
        """Release the transport handle."""
        self._session.close()

    def clone(self) -> "RequestExecutor":
        """Copy the configuration into a fresh, unexecuted executor.

        The copy gets its own transport handle and empty response state.

        Returns:
            New RequestExecutor with the same configuration.
        """
        other = RequestExecutor(transport=self._transport, settings=self._settings)
        other._headers = dict(self._headers)
        other._options = dict(self._options)
        other._ignore_status = self._ignore_status
        other._retry_times = self._retry_times
        other._retry_interval_ms = self._retry_interval_ms
        other._max_response_bytes = self._max_response_bytes
        return other

    @property
    def state(self) -> ExecutorState:
        """Get the current lifecycle state."""
        return self._machine.state

    # configuration

    def setopt(self, option: TransportOption, value: Any) -> "RequestExecutor":
        """Set a transport option; a later write replaces an earlier one.

        Raises:
            InvalidArgumentError: If the value does not fit the option.
        """
        self._machine.require_configuring()
        value = _check_option(option, value)
        self._options.pop(option, None)
        self._options[option] = value
        return self

    def unsetopt(self, option: TransportOption) -> "RequestExecutor":
        """Remove a transport option."""
        self._machine.require_configuring()
        self._options.pop(option, None)
        return self

    def method(self, method: str) -> "RequestExecutor":
        """Set the request method."""
        return self.setopt(TransportOption.METHOD, method)

    def get(self) -> "RequestExecutor":
        return self.method(METHOD_GET)

    def post(self) -> "RequestExecutor":
        return self.method(METHOD_POST)

    def put(self) -> "RequestExecutor":
        return self.method(METHOD_PUT)

    def patch(self) -> "RequestExecutor":
        return self.method(METHOD_PATCH)

    def delete(self) -> "RequestExecutor":
        return self.method(METHOD_DELETE)

    def url(self, url: str, params: Mapping[str, Any] | None = None) -> "RequestExecutor":
        """Set the request URL, merging query parameters into it.

        Args:
            url: Base URL; an existing query and fragment are preserved.
            params: Query parameters appended to the URL's query.
        """
        if params:
            url = build_url(url, params)
        return self.setopt(TransportOption.URL, url)

    def header(self, name: str, value: str | None) -> "RequestExecutor":
        """Set or remove a request header.

        No canonicalization is applied to the name: "Content-Type" and
        "content-type" are different keys here.

        Args:
            name: Header name, sent exactly as given.
            value: Header value, None to remove the header.
        """
        self._machine.require_configuring()
        if value is None:
            self._headers.pop(name, None)
        else:
            self._headers[name] = value
        return self

    def user_agent(self, agent: str) -> "RequestExecutor":
        return self.header(HEADER_USER_AGENT, agent)

    def media_type(self, mime: str) -> "RequestExecutor":
        """Set the Content-Type request header."""
        return self.header(HEADER_CONTENT_TYPE, mime)

    def encoding(self, encoding: str = "") -> "RequestExecutor":
        """Request compressed responses.

        Args:
            encoding: Accept-Encoding value; empty for every encoding the
                transport can decode.
        """
        return self.setopt(TransportOption.ENCODING, encoding)

    def body(self, fields: Mapping[str, Any]) -> "RequestExecutor":
        """Send structured form fields as multipart/form-data.

        Any explicit Content-Type header is dropped so the transport can
        supply the multipart boundary.
        """
        self.header(HEADER_CONTENT_TYPE, None)
        return self.setopt(
            TransportOption.BODY, RequestBody(kind=BodyKind.FORM, payload=dict(fields))
        )

    def body_urlencoded(self, text: str) -> "RequestExecutor":
        """Send a pre-encoded application/x-www-form-urlencoded string."""
        self.header(HEADER_CONTENT_TYPE, None)
        return self.setopt(
            TransportOption.BODY, RequestBody(kind=BodyKind.URLENCODED, payload=text)
        )

    def body_raw(self, text: str | bytes, mime: str = "") -> "RequestExecutor":
        """Send a raw payload.

        Args:
            text: Request payload.
            mime: Content-Type to set; left untouched when empty.
        """
        self.setopt(TransportOption.BODY, RequestBody(kind=BodyKind.RAW, payload=text))
        if mime:
            self.media_type(mime)
        return self

    def body_json(self, data: Any) -> "RequestExecutor":
        """Send data encoded as compact JSON.

        Raises:
            SerializationError: If the data cannot be encoded.
        """
        try:
            text = json.dumps(data, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(str(exc)) from exc
        return self.body_raw(text, TYPE_JSON)

    def timeout(self, seconds: float) -> "RequestExecutor":
        return self.setopt(TransportOption.TIMEOUT, seconds)

    def timeout_ms(self, milliseconds: int) -> "RequestExecutor":
        return self.setopt(TransportOption.TIMEOUT_MS, milliseconds)

    def max_size(self, size: int) -> "RequestExecutor":
        """Cap the response body size; negative means unbounded.

        A response larger than the cap fails the attempt instead of being
        truncated.
        """
        self._machine.require_configuring()
        self._max_response_bytes = size if size >= 0 else UNBOUNDED_SIZE
        return self

    def ssl_verify(self, ca_file: str = "") -> "RequestExecutor":
        """Verify the server certificate.

        Args:
            ca_file: CA bundle path; empty selects the configured default
                bundle, or certifi's bundle when none is configured.
        """
        if not ca_file:
            ca_file = self._settings.ca_bundle or ""
        if ca_file:
            self.setopt(TransportOption.CA_INFO, ca_file)
        else:
            self.unsetopt(TransportOption.CA_INFO)
        return self.setopt(TransportOption.SSL_VERIFY_PEER, True)

    def follow_location(self, follow: bool = True) -> "RequestExecutor":
        return self.setopt(TransportOption.FOLLOW_LOCATION, follow)

    def max_redirects(self, max_redirects: int) -> "RequestExecutor":
        return self.setopt(TransportOption.MAX_REDIRECTS, max_redirects)

    def ignore_code(self, ignore: bool = True) -> "RequestExecutor":
        """Accept any final status code instead of failing outside 2xx."""
        self._machine.require_configuring()
        self._ignore_status = ignore
        return self

    def retry(self, times: int, interval_ms: int = 0) -> "RequestExecutor":
        """Configure the retry policy.

        Non-2xx responses are retried like transport failures unless
        ignore_code() is set.

        Args:
            times: Total number of attempts, at least 1.
            interval_ms: Pause between attempts in milliseconds.

        Raises:
            InvalidArgumentError: If times < 1 or interval_ms < 0.
        """
        self._machine.require_configuring()
        if times < 1:
            msg = f"invalid try times {times}"
            raise InvalidArgumentError(msg)
        if interval_ms < 0:
            msg = f"invalid try interval {interval_ms}"
            raise InvalidArgumentError(msg)
        self._retry_times = times
        self._retry_interval_ms = interval_ms
        return self

    def verbose(self, verbose: bool = True) -> "RequestExecutor":
        """Log every request and response hop at info level."""
        if verbose:
            return self.setopt(TransportOption.VERBOSE, True)
        return self.unsetopt(TransportOption.VERBOSE)

    # execution

    def fetch(self) -> str:
        """Execute the request with the configured retry policy.

        Returns:
            Response body text of the first successful attempt.

        Raises:
            AlreadyExecutedError: If the executor was already executed.
            TransportError: If the last attempt failed in the transport.
            HttpStatusError: If the last attempt ended with a non-2xx status.
        """
        self._machine.begin()
        try:
            return self._execute()
        finally:
            if not self._machine.is_terminal:
                self._machine.fail()

    def _execute(self) -> str:
        url = str(self._options.get(TransportOption.URL, ""))
        log = self._log.bind(url=redact_url_credentials(url))

        try:
            prepared = prepare_request(
                self._options,
                self._headers,
                user_agent=self._settings.user_agent,
                chunk_size=self._settings.chunk_size,
            )
            self._session.open(prepared)
        except TransportError as exc:
            self._machine.fail()
            log.error("fetch_prepare_failed", **exc.to_dict())
            raise

        log = log.bind(method=prepared.method)

        for attempt in range(1, self._retry_times + 1):
            self._attempts += 1
            result = self._attempt(attempt, log)

            if result.error is None:
                self._machine.succeed()
                return result.body

            self._errors.append(result.error)
            if attempt == self._retry_times:
                break

            self._metrics.record_retry()
            log.info(
                "retry_scheduled",
                attempt=attempt,
                max_attempts=self._retry_times,
                delay_ms=self._retry_interval_ms,
            )
            if self._retry_interval_ms > 0:
                time.sleep(self._retry_interval_ms / 1000.0)

        self._machine.fail()
        log.warning("fetch_exhausted", attempts=self._attempts)
        raise self._errors[-1]

    def _attempt(self, attempt: int, log: structlog.stdlib.BoundLogger) -> AttemptResult:
        """Perform one round trip and classify its outcome."""
        self._capture.reset()
        self._body = ""
        sink = make_body_sink(self._max_response_bytes)
        self._metrics.record_attempt()
        log.debug("attempt_started", attempt=attempt)
        start_ns = time.perf_counter_ns()

        try:
            trip = self._session.round_trip(self._capture, sink)
        except TransportError as exc:
            return self._failed(attempt, exc, log)
        finally:
            self._metrics.record_duration((time.perf_counter_ns() - start_ns) / 1_000_000)

        self._body = trip.text
        status_code = self._session.last_response.status_code
        self._metrics.record_response(status_code, len(trip.body))

        if not self._ignore_status and not (
            HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX
        ):
            return self._failed(attempt, HttpStatusError(status_code), log)

        log.info(
            "attempt_succeeded",
            attempt=attempt,
            status_code=status_code,
            bytes=len(trip.body),
        )
        return AttemptResult(body=trip.text)

    def _failed(
        self,
        attempt: int,
        error: AttemptError,
        log: structlog.stdlib.BoundLogger,
    ) -> AttemptResult:
        kind = error.code.value if isinstance(error, TransportError) else error.kind
        self._metrics.record_failure(kind)
        log.warning("attempt_failed", attempt=attempt, **error.to_dict())
        return AttemptResult(error=error)

    def fetch_json(self, check_mime: bool = False) -> dict[str, Any] | list[Any]:
        """Execute the request and decode the body as a JSON object or array.

        Args:
            check_mime: Require an application/json content type.

        Returns:
            Decoded JSON object or array.

        Raises:
            MimeMismatchError: If check_mime is set and the type is not JSON.
            ParseError: If the body is not valid JSON or is a JSON scalar.
        """
        text = self.fetch()
        if check_mime:
            mime = self.content_type()
            if not mime.lower().startswith(TYPE_JSON):
                raise MimeMismatchError(mime)
        return parse_json(text)

    # response information

    def attempts_used(self) -> int:
        self._machine.require_started()
        return self._attempts

    def response_info(self) -> ResponseInfo:
        """Get a snapshot of the last response observed."""
        self._machine.require_started()
        return self._session.last_response

    def status_code(self) -> int:
        """Get the status of the last response, 0 if none arrived."""
        return self.response_info().status_code

    def content_type(self) -> str:
        return self.response_info().content_type

    def response_body(self) -> str:
        """Get the body text of the last completed round trip.

        Also available when that attempt failed on its status code.
        """
        self._machine.require_started()
        return self._body

    def header_values(self, name: str) -> list[str]:
        """Get every value of a response header (case-insensitive)."""
        self._machine.require_started()
        return self._capture.values(name)

    def header_line(self, name: str) -> str:
        """Get a response header's values joined with commas."""
        return ",".join(self.header_values(name))

    def all_headers(self) -> dict[str, list[str]]:
        self._machine.require_started()
        return self._capture.as_dict()

    def all_headers_line(self) -> dict[str, str]:
        return {name: ",".join(values) for name, values in self.all_headers().items()}

    def attempt_errors(self) -> list[AttemptError]:
        """Get the failure of every failed attempt, in attempt order."""
        self._machine.require_started()
        return list(self._errors)


def parse_json(text: str) -> dict[str, Any] | list[Any]:
    """Decode a JSON object or array.

    Args:
        text: JSON document.

    Returns:
        Decoded object or array.

    Raises:
        ParseError: If the text is not valid JSON or is a JSON scalar.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(str(exc)) from exc
    if not isinstance(data, dict | list):
        msg = "json is not array nor object"
        raise ParseError(msg)
    return data


_TIMEOUT_OPTIONS = frozenset({TransportOption.TIMEOUT, TransportOption.TIMEOUT_MS})
_STRING_OPTIONS = frozenset(
    {TransportOption.METHOD, TransportOption.URL, TransportOption.CA_INFO}
)


def _check_option(option: TransportOption, value: Any) -> Any:
    """Validate a transport option value and return the value to store."""
    if option is TransportOption.BODY:
        if value is None:
            return None
        try:
            return RequestBody.coerce(value)
        except TypeError as exc:
            raise InvalidArgumentError(str(exc)) from exc

    if option is TransportOption.MAX_REDIRECTS:
        valid = isinstance(value, int) and not isinstance(value, bool)
    elif option in _TIMEOUT_OPTIONS:
        valid = isinstance(value, int | float) and not isinstance(value, bool)
    elif option in _STRING_OPTIONS:
        valid = isinstance(value, str)
    else:
        valid = True

    if not valid:
        msg = f"invalid value {value!r} for option {option.value}"
        raise InvalidArgumentError(msg)
    return value
