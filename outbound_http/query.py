"""Query parameters for non-body methods.

build_parameter_map() validates a payload into a Parameter Map
(str -> list[str]); add_query_parameters() appends it to a URL's query
component, keeping any fragment in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote_plus

import httpx

from outbound_http.errors import InvalidPayloadShapeError, MalformedTargetError

ParameterMap = dict[str, list[str]]


def build_parameter_map(payload: Any, method: str = "GET") -> ParameterMap:
    """Build a Parameter Map from a payload.

    Keys must be str. Values must be str, or a list/tuple of str. Any other
    shape raises; there is no partial result.

    Raises:
        InvalidPayloadShapeError: If the payload is not such a mapping.
    """
    if not isinstance(payload, Mapping):
        raise InvalidPayloadShapeError(
            f"Message payload must be a Map for a '{method}' request, "
            f"got {type(payload).__name__}"
        )

    parameter_map: ParameterMap = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            raise InvalidPayloadShapeError(_shape_reason(method, f"key {key!r} is not a str"))
        if isinstance(value, str):
            parameter_map[key] = [value]
        elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            parameter_map[key] = list(value)
        else:
            raise InvalidPayloadShapeError(
                _shape_reason(method, f"value for {key!r} is a {type(value).__name__}")
            )
    return parameter_map


def _shape_reason(method: str, detail: str) -> str:
    return (
        f"Payload must be a Map with str keys and str or str sequence values "
        f"for a '{method}' request ({detail})"
    )


def encode_query_component(value: str, charset: str) -> str:
    """Form-encode one key or value (spaces become '+')."""
    return quote_plus(value, encoding=charset)


def add_query_parameters(
    url: str,
    parameter_map: Mapping[str, list[str]] | None,
    charset: str = "UTF-8",
) -> str:
    """Append *parameter_map* to the query component of *url*.

    The fragment (everything from the first '#') is split off first and
    reattached unchanged. A '&' is only inserted when the URL does not
    already end in '?' or '&'.

    Raises:
        InvalidPayloadShapeError: If a key or value cannot be encoded in *charset*.
        MalformedTargetError: If the result is not a valid absolute URL.
    """
    if not parameter_map:
        return url

    base, sep, fragment = url.partition("#")
    parts = [base]
    if "?" not in base:
        parts.append("?")
    last_char = parts[-1][-1:] if parts[-1] else ""

    for key, values in parameter_map.items():
        for value in values:
            if last_char not in ("?", "&"):
                parts.append("&")
            try:
                pair = f"{encode_query_component(key, charset)}={encode_query_component(value, charset)}"
            except UnicodeError as e:
                raise InvalidPayloadShapeError(
                    f"Query parameter {key!r} cannot be encoded as {charset}: {e}"
                ) from e
            parts.append(pair)
            last_char = pair[-1]

    if sep:
        parts.append(sep + fragment)
    result = "".join(parts)

    try:
        parsed = httpx.URL(result)
    except httpx.InvalidURL as e:
        raise MalformedTargetError(f"Failed to build URL with query parameters: {e}") from e
    if not parsed.is_absolute_url:
        raise MalformedTargetError(f"URL with query parameters is not absolute: {result!r}")
    return result
