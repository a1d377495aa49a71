"""Data models for outbound request mapping.

All models use Pydantic v2 and are frozen: a Message is read-only input,
a RequestDescriptor is the fully assembled output, and MapperConfig is the
immutable configuration snapshot swapped atomically by the mapper.
"""

from __future__ import annotations

import codecs
import os
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# Well-known message header keys read by the mapper.
REQUEST_URL_HEADER = "http_requestUrl"
REQUEST_METHOD_HEADER = "http_requestMethod"

DEFAULT_METHOD = "POST"
DEFAULT_CHARSET = "UTF-8"
BODY_METHODS = frozenset({"POST", "PUT"})


# Text codecs that are not charsets: they transform labels or escape sequences.
_NON_CHARSET_CODECS = frozenset({"idna", "punycode", "unicode-escape", "raw-unicode-escape"})

_CHARSET_SAMPLE = "Az09 a..b-_~!*'()&=+%#"


def is_supported_charset(name: str) -> bool:
    """Return True when *name* is a charset known to the codec registry.

    Binary codecs (rot13, zlib) and label codecs (idna, punycode) are
    rejected; the codec must also round-trip a plain ASCII sample.
    """
    if not isinstance(name, str) or not name.strip():
        return False
    try:
        info = codecs.lookup(name)
    except (LookupError, ValueError):
        return False
    if not getattr(info, "_is_text_encoding", True):
        return False
    if info.name.replace("_", "-") in _NON_CHARSET_CODECS:
        return False
    try:
        return _CHARSET_SAMPLE.encode(name).decode(name) == _CHARSET_SAMPLE
    except (UnicodeError, LookupError, ValueError):
        return False


def is_absolute_url(value: str) -> bool:
    """Return True when *value* parses as a URL with both scheme and host."""
    try:
        return httpx.URL(value).is_absolute_url
    except (httpx.InvalidURL, TypeError):
        return False


# =============================================================================
# Message
# =============================================================================


class Message(BaseModel):
    """Envelope handed to the mapper: an opaque payload plus headers.

    Header values are opaque; the mapper only interprets the two keys
    REQUEST_URL_HEADER and REQUEST_METHOD_HEADER.
    """

    model_config = ConfigDict(frozen=True)

    payload: Any = Field(default=None, description="Message payload of any runtime type")
    headers: dict[str, Any] = Field(default_factory=dict, description="Header name -> value")

    @classmethod
    def of(cls, payload: Any, **headers: Any) -> "Message":
        """Shorthand for ``Message(payload=..., headers={...})``."""
        return cls(payload=payload, headers=headers)

    def header(self, name: str, default: Any = None) -> Any:
        return self.headers.get(name, default)


# =============================================================================
# Request Descriptor
# =============================================================================


class RequestDescriptor(BaseModel):
    """Immutable description of one outbound HTTP request.

    Produced only fully assembled. content_type is None on the query path,
    where the body is always empty.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_url: str = Field(description="Absolute target URL")
    method: str = Field(default=DEFAULT_METHOD, description="Uppercase HTTP method")
    content_type: str | None = Field(default=None, description="Content-Type of the body")
    body: bytes = Field(default=b"", description="Request body bytes")

    @field_validator("target_url")
    @classmethod
    def validate_target_url(cls, v: str) -> str:
        if not is_absolute_url(v):
            raise ValueError(f"target_url must be an absolute URL, got {v!r}")
        return v

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        if not v or v != v.upper():
            raise ValueError(f"method must be a non-empty uppercase string, got {v!r}")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def content_length(self) -> int:
        return len(self.body)

    def headers(self) -> dict[str, str]:
        """Entity headers the transport should send with this request."""
        headers: dict[str, str] = {}
        if self.content_type is not None:
            headers["Content-Type"] = self.content_type
        if self.body:
            headers["Content-Length"] = str(self.content_length)
        return headers


# =============================================================================
# Configuration
# =============================================================================


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class MapperConfig(BaseModel):
    """Immutable mapper configuration snapshot.

    The mapper never mutates a snapshot; setters validate a replacement and
    swap the reference, so one mapping call sees one consistent charset.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_url: str | None = Field(
        default=None, description="Fallback target URL when the message has no URL header"
    )
    extract_payload: bool = Field(
        default=True, description="Map the payload (True) or the whole message envelope (False)"
    )
    charset: str = Field(default=DEFAULT_CHARSET, description="Charset for text and query encoding")

    @field_validator("default_url", mode="before")
    @classmethod
    def validate_default_url(cls, v: Any) -> str | None:
        if v is None:
            return None
        if isinstance(v, httpx.URL):
            v = str(v)
        if not isinstance(v, str) or not is_absolute_url(v):
            raise ValueError(f"default_url must be an absolute URL, got {v!r}")
        return v

    @field_validator("charset")
    @classmethod
    def validate_charset(cls, v: str) -> str:
        if not is_supported_charset(v):
            raise ValueError(f"unsupported charset '{v}'")
        return v

    @classmethod
    def from_env(cls) -> "MapperConfig":
        """Create a config from environment variables (evaluated at call time)."""
        return cls(
            default_url=os.getenv("OUTBOUND_HTTP_DEFAULT_URL") or None,
            extract_payload=_bool_env("OUTBOUND_HTTP_EXTRACT_PAYLOAD", True),
            charset=os.getenv("OUTBOUND_HTTP_CHARSET", DEFAULT_CHARSET),
        )
