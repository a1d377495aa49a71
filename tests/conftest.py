"""Pytest configuration and fixtures for outbound-http tests."""

from __future__ import annotations

from typing import Any

import pytest

from outbound_http.mapper import OutboundRequestMapper
from outbound_http.models import REQUEST_METHOD_HEADER, REQUEST_URL_HEADER, Message

DEFAULT_URL = "http://localhost:8080/default"


def make_message(
    payload: Any = None,
    url: Any = None,
    method: Any = None,
    **headers: Any,
) -> Message:
    """Create a Message with the well-known headers set when given.

    Prefer this over constructing Message directly - it keeps header key
    constants out of individual tests.
    """
    all_headers: dict[str, Any] = dict(headers)
    if url is not None:
        all_headers[REQUEST_URL_HEADER] = url
    if method is not None:
        all_headers[REQUEST_METHOD_HEADER] = method
    return Message(payload=payload, headers=all_headers)


@pytest.fixture
def mapper() -> OutboundRequestMapper:
    """Mapper with a default URL and default settings."""
    return OutboundRequestMapper(DEFAULT_URL)


@pytest.fixture
def bare_mapper() -> OutboundRequestMapper:
    """Mapper with no default URL."""
    return OutboundRequestMapper()
