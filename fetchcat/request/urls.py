"""URL helpers for the request executor."""

from collections.abc import Mapping
from typing import Any

import httpx


def encode_params(params: Mapping[str, Any]) -> str:
    """Encode query parameters.

    Sequence values produce repeated keys, None values are sent empty
    and booleans are sent as "true"/"false".

    Args:
        params: Query parameters.

    Returns:
        Encoded query string without a leading "?".
    """
    return str(httpx.QueryParams(params))


def build_url(url: str, params: Mapping[str, Any]) -> str:
    """Merge query parameters into a URL.

    The fragment is split off first and reattached last. An existing query
    is extended with "&" unless it already ends with one.

    Args:
        url: Base URL, possibly with a query and a fragment.
        params: Query parameters to append.

    Returns:
        URL with the encoded parameters appended to its query.
    """
    full, _, fragment = url.partition("#")

    if "?" in full:
        if not full.endswith("&"):
            full += "&"
    else:
        full += "?"

    full += encode_params(params)
    if fragment:
        full += "#" + fragment
    return full
