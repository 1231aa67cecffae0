"""Transport session: one owned httpx client and single round trips."""

import ssl
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import certifi
import httpx
import structlog

from fetchcat.request.capture import BodySink, HeaderSink
from fetchcat.request.constants import (
    DEFAULT_ACCEPT_ENCODING,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_REDIRECTS,
    HEADER_ACCEPT_ENCODING,
    HEADER_CONTENT_TYPE,
    HEADER_USER_AGENT,
    METHOD_GET,
    METHOD_POST,
    TYPE_FORM_URLENCODED,
)
from fetchcat.request.errors import TransportError, TransportErrorCode
from fetchcat.request.models import BodyKind, RequestBody, ResponseInfo, TransportOption
from fetchcat.request.redact import redact_header_pairs, redact_url_credentials


logger = structlog.get_logger()


@dataclass(frozen=True)
class PreparedRequest:
    """Request description resolved from executor options."""

    method: str
    url: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: RequestBody | None = None
    timeout: float | None = None
    verify: bool | ssl.SSLContext = True
    follow_redirects: bool = False
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    verbose: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass(frozen=True)
class RoundTrip:
    """Body of a completed round trip."""

    body: bytes
    text: str


def _has_header(headers: list[tuple[str, str]], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key, _ in headers)


def _resolve_timeout(options: Mapping[TransportOption, Any]) -> float | None:
    """Pick the timeout that was written last.

    Options are kept in write order, so the later of TIMEOUT and
    TIMEOUT_MS wins.
    """
    timeout: float | None = None
    for option, value in options.items():
        if option is TransportOption.TIMEOUT:
            timeout = float(value) if value and value > 0 else None
        elif option is TransportOption.TIMEOUT_MS:
            timeout = float(value) / 1000.0 if value and value > 0 else None
    return timeout


def _resolve_verify(options: Mapping[TransportOption, Any]) -> bool | ssl.SSLContext:
    if options.get(TransportOption.SSL_VERIFY_PEER) is False:
        return False
    ca_file = options.get(TransportOption.CA_INFO)
    if not ca_file and not options.get(TransportOption.SSL_VERIFY_PEER):
        return True
    cafile = str(ca_file) if ca_file else certifi.where()
    try:
        return ssl.create_default_context(cafile=cafile)
    except (OSError, ssl.SSLError) as exc:
        msg = f"error setting certificate file {cafile}: {exc}"
        raise TransportError(TransportErrorCode.SSL, msg) from exc


def prepare_request(
    options: Mapping[TransportOption, Any],
    headers: Mapping[str, str],
    user_agent: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> PreparedRequest:
    """Resolve executor options into a request description.

    Args:
        options: Transport options in write order.
        headers: Caller headers, sent verbatim.
        user_agent: Default User-Agent when the caller sets none.
        chunk_size: Body streaming chunk size.

    Returns:
        PreparedRequest ready for a transport session.

    Raises:
        TransportError: If no URL has been set, or the CA bundle cannot
            be loaded.
    """
    url = options.get(TransportOption.URL)
    if not url:
        raise TransportError(TransportErrorCode.INVALID_URL, "no URL set")

    body = None
    if options.get(TransportOption.BODY) is not None:
        body = RequestBody.coerce(options[TransportOption.BODY])

    method = options.get(TransportOption.METHOD)
    if not method:
        method = METHOD_POST if body is not None else METHOD_GET

    header_list = [(name, value) for name, value in headers.items()]
    if user_agent and not _has_header(header_list, HEADER_USER_AGENT):
        header_list.append((HEADER_USER_AGENT, user_agent))
    encoding = options.get(TransportOption.ENCODING)
    if encoding is not None and not _has_header(header_list, HEADER_ACCEPT_ENCODING):
        header_list.append((HEADER_ACCEPT_ENCODING, encoding or DEFAULT_ACCEPT_ENCODING))
    if (
        body is not None
        and body.kind is not BodyKind.FORM
        and not _has_header(header_list, HEADER_CONTENT_TYPE)
    ):
        header_list.append((HEADER_CONTENT_TYPE, TYPE_FORM_URLENCODED))

    max_redirects = options.get(TransportOption.MAX_REDIRECTS, DEFAULT_MAX_REDIRECTS)
    if max_redirects < 0:
        max_redirects = DEFAULT_MAX_REDIRECTS

    return PreparedRequest(
        method=str(method).upper(),
        url=str(url),
        headers=header_list,
        body=body,
        timeout=_resolve_timeout(options),
        verify=_resolve_verify(options),
        follow_redirects=bool(options.get(TransportOption.FOLLOW_LOCATION, False)),
        max_redirects=max_redirects,
        verbose=bool(options.get(TransportOption.VERBOSE, False)),
        chunk_size=chunk_size,
    )


def _form_files(payload: Mapping[str, Any]) -> list[tuple[str, tuple[None, str | bytes]]]:
    files: list[tuple[str, tuple[None, str | bytes]]] = []
    for name, value in payload.items():
        values = value if isinstance(value, list | tuple) else [value]
        for item in values:
            content = item if isinstance(item, bytes) else str(item)
            files.append((name, (None, content)))
    return files


def _caused_by_ssl(exc: BaseException) -> bool:
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, ssl.SSLError):
            return True
        current = current.__cause__ or current.__context__
    return "SSL" in str(exc) or "CERTIFICATE" in str(exc).upper()


def _classify(exc: Exception) -> TransportErrorCode:
    """Map an httpx exception to a transport error code."""
    if isinstance(exc, httpx.TimeoutException):
        return TransportErrorCode.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        if _caused_by_ssl(exc):
            return TransportErrorCode.SSL
        return TransportErrorCode.CONNECT
    if isinstance(exc, httpx.TooManyRedirects):
        return TransportErrorCode.TOO_MANY_REDIRECTS
    if isinstance(exc, httpx.UnsupportedProtocol):
        return TransportErrorCode.INVALID_URL
    if isinstance(exc, httpx.ProtocolError | httpx.DecodingError):
        return TransportErrorCode.PROTOCOL
    return TransportErrorCode.UNKNOWN


class TransportSession:
    """Exclusively owned transport handle.

    Wraps a single httpx.Client built from the prepared request's TLS,
    timeout and redirect settings. Every response hop, redirects included,
    is replayed to the current header sink as raw header lines.
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the session.

        Args:
            transport: Optional connection layer (e.g. httpx.MockTransport).
        """
        self._transport = transport
        self._client: httpx.Client | None = None
        self._prepared: PreparedRequest | None = None
        self._header_sink: HeaderSink | None = None
        self._info = ResponseInfo()
        self._hops = 0
        self._log = logger.bind(component="request", subcomponent="transport")

    @property
    def is_open(self) -> bool:
        """Check if the underlying client exists."""
        return self._client is not None

    @property
    def last_response(self) -> ResponseInfo:
        """Get information about the last response hop observed."""
        return self._info

    def open(self, prepared: PreparedRequest) -> None:
        """Build the httpx client for a prepared request.

        Args:
            prepared: Resolved request description.
        """
        self.close()
        self._prepared = prepared
        self._client = httpx.Client(
            transport=self._transport,
            verify=prepared.verify,
            timeout=httpx.Timeout(prepared.timeout),
            follow_redirects=prepared.follow_redirects,
            max_redirects=prepared.max_redirects,
            event_hooks={
                "request": [self._on_request],
                "response": [self._on_response],
            },
        )

    def close(self) -> None:
        """Release the httpx client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def round_trip(self, header_sink: HeaderSink, body_sink: BodySink) -> RoundTrip:
        """Perform one full exchange, following redirects if configured.

        Args:
            header_sink: Receives every header line of every hop.
            body_sink: Receives the final response body chunk by chunk.

        Returns:
            RoundTrip with the accepted body bytes and decoded text.

        Raises:
            TransportError: On any transport failure or sink refusal.
        """
        if self._client is None or self._prepared is None:
            msg = "Transport session is not open"
            raise RuntimeError(msg)

        client = self._client
        prepared = self._prepared
        self._header_sink = header_sink
        self._info = ResponseInfo()
        self._hops = 0
        start = time.perf_counter()

        try:
            request = self._build(client, prepared)
            response = client.send(request, stream=True)
            try:
                for chunk in response.iter_bytes(chunk_size=prepared.chunk_size):
                    if body_sink.write(chunk) != len(chunk):
                        raise TransportError(
                            TransportErrorCode.WRITE_ABORTED,
                            "failure writing output: response body refused by sink",
                        )
            finally:
                response.close()
        except httpx.HTTPError as exc:
            raise TransportError(_classify(exc), str(exc) or type(exc).__name__) from exc
        except httpx.InvalidURL as exc:
            raise TransportError(TransportErrorCode.INVALID_URL, str(exc)) from exc
        except TransportError:
            raise
        except Exception as exc:  # noqa: BLE001
            msg = f"Unexpected error: {type(exc).__name__}: {exc}"
            raise TransportError(TransportErrorCode.UNKNOWN, msg) from exc
        finally:
            self._header_sink = None
            self._info = self._info.model_copy(
                update={"elapsed_ms": (time.perf_counter() - start) * 1000.0}
            )

        body = body_sink.getvalue()
        self._info = self._info.model_copy(update={"body_bytes": len(body)})
        encoding = response.encoding or "utf-8"
        return RoundTrip(body=body, text=body.decode(encoding, errors="replace"))

    @staticmethod
    def _build(client: httpx.Client, prepared: PreparedRequest) -> httpx.Request:
        kwargs: dict[str, Any] = {"headers": prepared.headers}
        if prepared.body is not None:
            payload = prepared.body.payload
            if isinstance(payload, Mapping):
                kwargs["files"] = _form_files(payload)
            else:
                kwargs["content"] = payload
        return client.build_request(prepared.method, prepared.url, **kwargs)

    def _on_request(self, request: httpx.Request) -> None:
        if self._prepared is not None and self._prepared.verbose:
            self._log.info(
                "request_sent",
                method=request.method,
                url=redact_url_credentials(str(request.url)),
                headers=redact_header_pairs(
                    (k.decode("latin-1"), v.decode("latin-1"))
                    for k, v in request.headers.raw
                ),
            )

    def _on_response(self, response: httpx.Response) -> None:
        """Replay a response hop to the header sink as raw lines."""
        self._hops += 1
        self._info = ResponseInfo(
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            final_url=str(response.url),
            http_version=response.http_version,
            redirect_count=self._hops - 1,
        )

        lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}\r\n"]
        lines.extend(
            f"{name.decode('latin-1')}: {value.decode('latin-1')}\r\n"
            for name, value in response.headers.raw
        )
        lines.append("\r\n")

        if self._header_sink is not None:
            for line in lines:
                if self._header_sink.receive(line) != len(line):
                    raise TransportError(
                        TransportErrorCode.HEADER_ABORTED,
                        "failed writing header: line refused by sink",
                    )

        if self._prepared is not None and self._prepared.verbose:
            self._log.info(
                "response_hop",
                hop=self._hops,
                status_code=response.status_code,
                url=redact_url_credentials(str(response.url)),
                headers=redact_header_pairs(
                    (k.decode("latin-1"), v.decode("latin-1"))
                    for k, v in response.headers.raw
                ),
            )
