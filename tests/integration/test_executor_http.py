"""Integration tests for RequestExecutor against a local HTTP server."""

import json
import threading
from collections.abc import Generator
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from fetchcat.request.errors import HttpStatusError, TransportError, TransportErrorCode
from fetchcat.request.executor import RequestExecutor
from fetchcat.request.metrics import RequestMetrics
from tests.helpers.transport import make_settings


def get_server_url(server: HTTPServer, path: str = "/") -> str:
    """Get the URL for a test server path."""
    host, port = server.server_address[0], server.server_address[1]
    if isinstance(host, bytes):
        host = host.decode("utf-8")
    return f"http://{host}:{port}{path}"


class RoutingHandler(BaseHTTPRequestHandler):
    """HTTP handler with one route per scenario."""

    flaky_count: int = 0
    flaky_failures: int = 2

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Suppress log messages during tests."""

    def _send(self, status: int, body: bytes, headers: dict[str, str]) -> None:
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:  # noqa: N802
        """Serve GET scenarios."""
        if self.path == "/redirect":
            self._send(302, b"", {"Location": "/final", "X-Stage": "redirect"})
        elif self.path == "/final":
            self._send(200, b"arrived", {"X-Stage": "final", "Content-Type": "text/plain"})
        elif self.path == "/large":
            self._send(200, b"z" * 4096, {"Content-Type": "application/octet-stream"})
        elif self.path == "/flaky":
            RoutingHandler.flaky_count += 1
            if RoutingHandler.flaky_count <= RoutingHandler.flaky_failures:
                self._send(503, b"Service Unavailable", {"Content-Type": "text/plain"})
            else:
                self._send(200, b"OK", {"Content-Type": "text/plain"})
        else:
            self._send(404, b"not found", {"Content-Type": "text/plain"})

    def do_POST(self) -> None:  # noqa: N802
        """Echo the request body and content type as JSON."""
        length = int(self.headers.get("Content-Length", "0"))
        payload = self.rfile.read(length).decode("utf-8")
        body = json.dumps(
            {"content_type": self.headers.get("Content-Type"), "body": payload}
        ).encode("utf-8")
        self._send(200, body, {"Content-Type": "application/json"})


@pytest.fixture
def server() -> Generator[HTTPServer]:
    """Start a local HTTP server."""
    RoutingHandler.flaky_count = 0
    RoutingHandler.flaky_failures = 2
    server = HTTPServer(("127.0.0.1", 0), RoutingHandler)
    thread = threading.Thread(target=server.serve_forever)
    thread.daemon = True
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def executor() -> Generator[RequestExecutor]:
    """Create an executor using the real httpx transport."""
    with RequestExecutor(settings=make_settings()) as req:
        yield req


class TestExecutorHttp:
    """End-to-end request execution over real sockets."""

    @pytest.mark.integration
    def test_follows_redirect_and_keeps_final_headers(
        self, server: HTTPServer, executor: RequestExecutor
    ) -> None:
        body = executor.url(get_server_url(server, "/redirect")).follow_location().fetch()

        assert body == "arrived"
        assert executor.header_values("x-stage") == ["final"]
        assert executor.response_info().redirect_count == 1
        assert executor.response_info().final_url == get_server_url(server, "/final")

    @pytest.mark.integration
    def test_size_cap_aborts_attempt(
        self, server: HTTPServer, executor: RequestExecutor
    ) -> None:
        executor.url(get_server_url(server, "/large")).max_size(1024)

        with pytest.raises(TransportError) as exc_info:
            executor.fetch()

        assert exc_info.value.code is TransportErrorCode.WRITE_ABORTED

    @pytest.mark.integration
    def test_retries_until_server_recovers(
        self, server: HTTPServer, executor: RequestExecutor
    ) -> None:
        body = executor.url(get_server_url(server, "/flaky")).retry(3, 10).fetch()

        assert body == "OK"
        assert executor.attempts_used() == 3
        assert [e.status_code for e in executor.attempt_errors()] == [503, 503]
        assert RequestMetrics.get_instance().retries_total == 2

    @pytest.mark.integration
    def test_retry_budget_exhausted(
        self, server: HTTPServer, executor: RequestExecutor
    ) -> None:
        RoutingHandler.flaky_failures = 5
        executor.url(get_server_url(server, "/flaky")).retry(2, 0)

        with pytest.raises(HttpStatusError):
            executor.fetch()

        assert executor.attempts_used() == 2
        assert executor.response_body() == "Service Unavailable"

    @pytest.mark.integration
    def test_post_json_round_trip(
        self, server: HTTPServer, executor: RequestExecutor
    ) -> None:
        data = (
            executor.post()
            .url(get_server_url(server, "/echo"))
            .body_json({"name": "cat"})
            .fetch_json(check_mime=True)
        )

        assert isinstance(data, dict)
        assert data["content_type"] == "application/json"
        assert json.loads(data["body"]) == {"name": "cat"}

    @pytest.mark.integration
    def test_connection_refused(self, executor: RequestExecutor) -> None:
        closed = HTTPServer(("127.0.0.1", 0), RoutingHandler)
        url = get_server_url(closed)
        closed.server_close()

        with pytest.raises(TransportError) as exc_info:
            executor.url(url).timeout(2).fetch()

        assert exc_info.value.code is TransportErrorCode.CONNECT
