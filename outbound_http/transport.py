"""Hand-off from RequestDescriptor to the transport layer.

The mapper never sends anything. This module builds the unsent
httpx.Request a transport collaborator would pass to ``Client.send()``.
"""

from __future__ import annotations

import httpx

from outbound_http.models import RequestDescriptor


def to_httpx_request(
    descriptor: RequestDescriptor,
    extra_headers: dict[str, str] | None = None,
) -> httpx.Request:
    """Build an httpx.Request from a descriptor.

    Content-Type and Content-Length come from the descriptor and override
    any same-named entries in *extra_headers*.
    """
    headers: dict[str, str] = {}
    for key, value in (extra_headers or {}).items():
        if key.lower() not in ("content-type", "content-length"):
            headers[key] = value
    headers.update(descriptor.headers())

    return httpx.Request(
        method=descriptor.method,
        url=descriptor.target_url,
        headers=headers,
        content=descriptor.body if descriptor.body else None,
    )
