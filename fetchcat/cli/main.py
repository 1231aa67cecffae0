"""CLI commands for fetchcat."""

import json
import sys
import uuid

import click

from fetchcat import __version__
from fetchcat.observability.logging import bind_request_context, configure_logging
from fetchcat.request.errors import AttemptError, FetchcatError
from fetchcat.request.executor import RequestExecutor
from fetchcat.settings import get_settings


def _split_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        msg = f"Invalid header {raw!r}, expected 'Name: value'"
        raise click.BadParameter(msg, param_hint="--header")
    return name.strip(), value.strip()


def _split_query(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        msg = f"Invalid query parameter {raw!r}, expected 'key=value'"
        raise click.BadParameter(msg, param_hint="--query")
    return name, value


def _echo_headers(executor: RequestExecutor) -> None:
    info = executor.response_info()
    click.echo(f"{info.http_version} {info.status_code}")
    for name, line in executor.all_headers_line().items():
        click.echo(f"{name}: {line}")
    click.echo("")


@click.group()
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """fetchcat: retrying HTTP request executor."""
    ctx.ensure_object(dict)


@cli.command()
@click.argument("url")
@click.option("--method", "-X", "method", default=None, help="Request method.")
@click.option(
    "--header",
    "-H",
    "headers",
    multiple=True,
    help="Request header as 'Name: value' (repeatable).",
)
@click.option(
    "--query",
    "-q",
    "query",
    multiple=True,
    help="Query parameter as 'key=value' merged into the URL (repeatable).",
)
@click.option("--data", "-d", "data", default=None, help="Urlencoded request body.")
@click.option("--json", "json_body", default=None, help="JSON request body.")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds.")
@click.option("--timeout-ms", type=int, default=None, help="Timeout in milliseconds.")
@click.option(
    "--max-size", type=int, default=-1, help="Response size cap in bytes (-1: none)."
)
@click.option("--retry", "retry_times", type=int, default=1, help="Total attempts.")
@click.option(
    "--retry-interval",
    type=int,
    default=0,
    help="Pause between attempts in milliseconds.",
)
@click.option(
    "--location/--no-location",
    "follow",
    default=False,
    help="Follow redirects (default: no).",
)
@click.option("--max-redirects", type=int, default=None, help="Redirect limit.")
@click.option(
    "--cacert",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="CA bundle for certificate verification.",
)
@click.option("--ssl-verify", is_flag=True, help="Verify with the default CA bundle.")
@click.option("--ignore-code", is_flag=True, help="Accept non-2xx responses.")
@click.option("--include", "-i", is_flag=True, help="Print response headers.")
@click.option("--parse-json", is_flag=True, help="Decode and pretty-print JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Log every request and hop.")
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: from FETCHCAT_JSON_LOGS).",
)
@click.pass_context
def fetch(  # noqa: PLR0913
    ctx: click.Context,
    url: str,
    method: str | None,
    headers: tuple[str, ...],
    query: tuple[str, ...],
    data: str | None,
    json_body: str | None,
    timeout: float | None,
    timeout_ms: int | None,
    max_size: int,
    retry_times: int,
    retry_interval: int,
    follow: bool,
    max_redirects: int | None,
    cacert: str | None,
    ssl_verify: bool,
    ignore_code: bool,
    include: bool,
    parse_json: bool,
    verbose: bool,
    json_logs: bool | None,
) -> None:
    """Fetch URL and print the response body.

    Exits with status 1 when every attempt fails; each attempt's error
    is printed to stderr.
    """
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        output=sys.stderr,
        json_format=settings.json_logs if json_logs is None else json_logs,
    )
    bind_request_context(uuid.uuid4().hex[:12])

    executor = RequestExecutor(transport=ctx.obj.get("transport"), settings=settings)
    with executor:
        try:
            executor.url(url, dict(_split_query(item) for item in query))
            for raw in headers:
                executor.header(*_split_header(raw))
            if method:
                executor.method(method.upper())
            if data is not None:
                executor.body_urlencoded(data)
            if json_body is not None:
                executor.body_json(json.loads(json_body))
            if timeout is not None:
                executor.timeout(timeout)
            if timeout_ms is not None:
                executor.timeout_ms(timeout_ms)
            if max_redirects is not None:
                executor.max_redirects(max_redirects)
            if cacert or ssl_verify:
                executor.ssl_verify(cacert or "")
            executor.max_size(max_size)
            executor.retry(retry_times, retry_interval)
            executor.follow_location(follow).ignore_code(ignore_code).verbose(verbose)
        except (FetchcatError, ValueError) as exc:
            raise click.UsageError(str(exc)) from exc

        try:
            result = executor.fetch_json() if parse_json else executor.fetch()
        except AttemptError:
            for number, error in enumerate(executor.attempt_errors(), start=1):
                click.echo(f"attempt {number}: {error}", err=True)
            if include:
                _echo_headers(executor)
            sys.exit(1)
        except FetchcatError as exc:
            click.echo(f"error: {exc}", err=True)
            sys.exit(1)

        if include:
            _echo_headers(executor)
        if parse_json:
            click.echo(json.dumps(result, indent=2, ensure_ascii=False))
        else:
            click.echo(result, nl=False)


def main() -> None:
    """Console script entry point."""
    cli(obj={})
