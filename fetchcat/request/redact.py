"""Credential redaction for request logging."""

import re
from collections.abc import Iterable


# Headers that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
    }
)

REDACTED_VALUE = "[REDACTED]"

_URL_CREDENTIALS = re.compile(r"(https?://)([^:/@]+):([^@/]+)@")


def is_sensitive_header(header_name: str) -> bool:
    """Check if a header name is sensitive.

    Args:
        header_name: The header name to check.

    Returns:
        True if the header should be redacted.
    """
    return header_name.lower() in SENSITIVE_HEADERS


def redact_header_pairs(headers: Iterable[tuple[str, str]]) -> list[list[str]]:
    """Redact sensitive values in an ordered header list.

    Pairs keep their order and name casing so repeated headers stay
    visible in verbose logs.

    Args:
        headers: (name, value) pairs.

    Returns:
        [name, value] pairs with sensitive values replaced.
    """
    return [
        [name, REDACTED_VALUE if is_sensitive_header(name) else value]
        for name, value in headers
    ]


def redact_url_credentials(url: str) -> str:
    """Redact user:password credentials embedded in a URL.

    Args:
        url: URL that may contain credentials.

    Returns:
        URL with credentials redacted.
    """
    return _URL_CREDENTIALS.sub(r"\1[REDACTED]:[REDACTED]@", url)
