"""URL Resolver - Determines the target URL for a message.

The target URL header can arrive in three recognized shapes. Each is
classified once into a TargetHeader, then converted; anything else is a
classification failure rather than a fallback.

    httpx.URL                       -> used directly
    urllib.parse.SplitResult/Parse  -> converted with geturl()
    str                             -> parsed as a URL

Without the header, the configured default URL is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import ParseResult, SplitResult

import httpx

from outbound_http.errors import (
    InvalidHeaderTypeError,
    MalformedTargetError,
    UnresolvedTargetError,
)
from outbound_http.models import REQUEST_URL_HEADER, Message

logger = logging.getLogger(__name__)


class TargetHeaderKind(str, Enum):
    """Recognized shapes of the target URL header value."""

    URL = "url"
    URI = "uri"
    STRING = "string"


@dataclass(frozen=True)
class TargetHeader:
    kind: TargetHeaderKind
    value: Any


def classify_target_header(value: Any, message: Message | None = None) -> TargetHeader:
    """Tag a target URL header value with its shape.

    Raises:
        InvalidHeaderTypeError: If the value is none of the recognized shapes.
    """
    if isinstance(value, httpx.URL):
        return TargetHeader(TargetHeaderKind.URL, value)
    if isinstance(value, (SplitResult, ParseResult)):
        return TargetHeader(TargetHeaderKind.URI, value)
    if isinstance(value, str):
        return TargetHeader(TargetHeaderKind.STRING, value)
    raise InvalidHeaderTypeError(
        f"Target URL in message header must be an httpx.URL, a parsed URI, or a str, "
        f"got {type(value).__name__}",
        message,
        header_value=value,
    )


def parse_absolute_url(value: str, message: Message | None = None) -> str:
    """Validate that *value* is an absolute URL and return it unchanged.

    Raises:
        MalformedTargetError: If httpx cannot parse it or it lacks scheme/host.
    """
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise MalformedTargetError(f"Invalid target URL {value!r}: {e}", message) from e
    if not url.is_absolute_url:
        raise MalformedTargetError(f"Target URL {value!r} is not an absolute URL", message)
    return value


def header_to_url(header: TargetHeader, message: Message | None = None) -> str:
    """Convert a classified header into an absolute URL string."""
    if header.kind is TargetHeaderKind.URL:
        url: httpx.URL = header.value
        if not url.is_absolute_url:
            raise MalformedTargetError(f"Target URL {str(url)!r} is not an absolute URL", message)
        return str(url)
    if header.kind is TargetHeaderKind.URI:
        return parse_absolute_url(header.value.geturl(), message)
    return parse_absolute_url(header.value, message)


def resolve_target_url(message: Message, default_url: str | None) -> str:
    """Resolve the target URL from the message header, falling back to *default_url*.

    Raises:
        UnresolvedTargetError: If there is neither a header nor a default.
        MalformedTargetError: If the header is not a valid absolute URL.
        InvalidHeaderTypeError: If the header is of an unrecognized type.
    """
    raw = message.headers.get(REQUEST_URL_HEADER)
    if raw is None:
        if default_url is None:
            raise UnresolvedTargetError(
                "failed to determine a target URL for message", message
            )
        logger.debug("No %s header, using default URL %s", REQUEST_URL_HEADER, default_url)
        return default_url

    header = classify_target_header(raw, message)
    url = header_to_url(header, message)
    logger.debug("Resolved target URL %s from %s header", url, header.kind.value)
    return url
