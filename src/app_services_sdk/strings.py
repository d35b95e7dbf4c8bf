"""Query string and random string helpers."""

from __future__ import annotations

import secrets
import string
from collections.abc import Mapping
from urllib.parse import quote, unquote

QueryValue = str | int | float | bool | None

# Characters encodeURIComponent leaves untouched on top of quote()'s defaults
_URI_COMPONENT_SAFE = "!*'()"

DEFAULT_ALPHABET = string.ascii_letters + string.digits


def generate_random_string(length: int, alphabet: str = DEFAULT_ALPHABET) -> str:
    """Generate a random sequence of characters.

    Args:
        length: The length of the string.
        alphabet: The alphabet of characters to pick from.

    Returns:
        A string of characters picked randomly from ``alphabet``.
    """
    if length < 0:
        msg = "length must be non-negative"
        raise ValueError(msg)
    if not alphabet:
        msg = "alphabet must not be empty"
        raise ValueError(msg)
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _stringify(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query_string(params: Mapping[str, QueryValue]) -> str:
    """Encode a mapping of scalar values into a query string.

    Keys whose value is ``None`` are left out entirely.
    """
    return "&".join(
        f"{key}={quote(_stringify(value), safe=_URI_COMPONENT_SAFE)}"
        for key, value in params.items()
        if value is not None
    )


def decode_query_string(query: str) -> dict[str, str]:
    """Decode a query string into a dictionary of strings."""
    if not query:
        return {}
    result: dict[str, str] = {}
    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        result[key] = unquote(value)
    return result


def encode_url(url: str, query: Mapping[str, QueryValue]) -> str:
    """Append a query string to ``url``.

    The ``?`` separator is only added when at least one parameter has a value.
    """
    query_string = encode_query_string(query)
    if query_string:
        return f"{url}?{query_string}"
    return url
