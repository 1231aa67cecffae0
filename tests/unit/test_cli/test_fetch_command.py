"""Unit tests for the fetch CLI command."""

import json

import httpx
import pytest
from click.testing import CliRunner, Result

from fetchcat.cli.main import cli
from tests.helpers.transport import TEST_USER_AGENT, ScriptedHandler


URL = "https://cli.example.test/data"

QUIET_ENV = {"FETCHCAT_LOG_LEVEL": "ERROR", "FETCHCAT_USER_AGENT": TEST_USER_AGENT}


def invoke(handler: ScriptedHandler, *args: str) -> Result:
    runner = CliRunner()
    return runner.invoke(
        cli,
        ["fetch", *args],
        obj={"transport": httpx.MockTransport(handler)},
        env=QUIET_ENV,
    )


class TestFetchCommand:
    """Tests for `fetchcat fetch`."""

    @pytest.mark.unit
    def test_prints_body(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200, text="hello")])

        result = invoke(handler, URL)

        assert result.exit_code == 0
        assert "hello" in result.output
        assert handler.requests[0].headers["user-agent"] == TEST_USER_AGENT

    @pytest.mark.unit
    def test_request_options_reach_transport(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200, text="ok")])

        result = invoke(
            handler,
            URL,
            "-X",
            "put",
            "-H",
            "X-Trace: abc",
            "-q",
            "page=2",
            "--json",
            '{"a": 1}',
        )

        assert result.exit_code == 0
        request = handler.requests[0]
        assert request.method == "PUT"
        assert request.headers["x-trace"] == "abc"
        assert request.url.params["page"] == "2"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"a": 1}

    @pytest.mark.unit
    def test_urlencoded_data_defaults_to_post(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200, text="ok")])

        result = invoke(handler, URL, "-d", "a=1&b=2")

        assert result.exit_code == 0
        assert handler.requests[0].method == "POST"
        assert handler.requests[0].content == b"a=1&b=2"

    @pytest.mark.unit
    def test_include_prints_headers(self) -> None:
        handler = ScriptedHandler.of(
            [httpx.Response(200, headers={"X-Test": "v"}, text="body")]
        )

        result = invoke(handler, URL, "--include")

        assert result.exit_code == 0
        assert "HTTP/1.1 200" in result.output
        assert "x-test: v" in result.output

    @pytest.mark.unit
    def test_parse_json(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200, json={"items": [1, 2]})])

        result = invoke(handler, URL, "--parse-json")

        assert result.exit_code == 0
        assert '"items": [' in result.output

    @pytest.mark.unit
    def test_parse_json_rejects_scalar(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200, text="42")])

        result = invoke(handler, URL, "--parse-json")

        assert result.exit_code == 1
        assert "error: json is not array nor object" in result.output

    @pytest.mark.unit
    def test_failed_attempts_listed(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(503, text="busy")])

        result = invoke(handler, URL, "--retry", "2")

        assert result.exit_code == 1
        assert "attempt 1: response code 503" in result.output
        assert "attempt 2: response code 503" in result.output
        assert len(handler.requests) == 2

    @pytest.mark.unit
    def test_ignore_code(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(404, text="missing")])

        result = invoke(handler, URL, "--ignore-code")

        assert result.exit_code == 0
        assert "missing" in result.output

    @pytest.mark.unit
    def test_invalid_retry_is_usage_error(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200)])

        result = invoke(handler, URL, "--retry", "0")

        assert result.exit_code == 2
        assert "invalid try times 0" in result.output
        assert handler.requests == []

    @pytest.mark.unit
    def test_invalid_header_is_usage_error(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200)])

        result = invoke(handler, URL, "-H", "no-colon")

        assert result.exit_code == 2
        assert handler.requests == []

    @pytest.mark.unit
    def test_invalid_json_body_is_usage_error(self) -> None:
        handler = ScriptedHandler.of([httpx.Response(200)])

        result = invoke(handler, URL, "--json", "{broken")

        assert result.exit_code == 2
        assert handler.requests == []
