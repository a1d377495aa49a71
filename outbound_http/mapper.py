"""Request Assembler - Maps a Message to a RequestDescriptor.

Each call runs the same pipeline against one configuration snapshot:

    resolve URL -> determine method -> body path | query path -> assembled

Body path (POST/PUT): the payload (or the whole message envelope when
payload extraction is disabled) is serialized into the body.
Query path (any other method): the payload must be a parameter map,
which is appended to the URL's query string; the body is empty.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any

import httpx
from pydantic import ValidationError

from outbound_http.errors import (
    MalformedTargetError,
    MappingError,
    MethodNotSupportedError,
    MissingPayloadError,
    UnsupportedCharsetError,
)
from outbound_http.models import (
    BODY_METHODS,
    DEFAULT_CHARSET,
    DEFAULT_METHOD,
    REQUEST_METHOD_HEADER,
    MapperConfig,
    Message,
    RequestDescriptor,
    is_absolute_url,
    is_supported_charset,
)
from outbound_http.query import add_query_parameters, build_parameter_map
from outbound_http.serializer import (
    DEFAULT_OBJECT_SERIALIZER,
    ObjectSerializer,
    serialize_payload,
)
from outbound_http.url_resolver import resolve_target_url

logger = logging.getLogger(__name__)


def determine_method(message: Message) -> str:
    """Read the request method header, uppercased; POST when absent.

    The header value is stripped of surrounding whitespace, and a blank
    value is treated like an absent header (POST).
    """
    raw = message.headers.get(REQUEST_METHOD_HEADER)
    if raw is None:
        return DEFAULT_METHOD
    method = str(raw).strip().upper()
    return method or DEFAULT_METHOD


class OutboundRequestMapper:
    """Maps messages to outbound HTTP request descriptors.

    Usage:
        mapper = OutboundRequestMapper("http://localhost:8080/orders")
        descriptor = mapper.map_to_request(Message.of(b"..."))

    The configuration is held as a single immutable MapperConfig. Setters
    build and validate a replacement, then swap the reference; in-flight
    calls keep the snapshot they read at call start.
    """

    def __init__(
        self,
        default_url: str | httpx.URL | None = None,
        *,
        extract_payload: bool = True,
        charset: str = DEFAULT_CHARSET,
        object_serializer: ObjectSerializer | None = None,
    ) -> None:
        """Initialize the mapper.

        Args:
            default_url: Target URL used when a message has no URL header.
            extract_payload: Map the payload (True) or the whole message (False).
            charset: Charset for text payloads and query parameter encoding.
            object_serializer: Encoder for structured payloads (pickle by default).

        Raises:
            UnsupportedCharsetError: If *charset* is unknown.
            MalformedTargetError: If *default_url* is not an absolute URL.
        """
        self._object_serializer = object_serializer or DEFAULT_OBJECT_SERIALIZER
        self._config_lock = Lock()
        self._check_charset(charset)
        self._check_default_url(default_url)
        self._config = MapperConfig(
            default_url=default_url,
            extract_payload=extract_payload,
            charset=charset,
        )

    @classmethod
    def from_config(
        cls,
        config: MapperConfig,
        object_serializer: ObjectSerializer | None = None,
    ) -> "OutboundRequestMapper":
        return cls(
            config.default_url,
            extract_payload=config.extract_payload,
            charset=config.charset,
            object_serializer=object_serializer,
        )

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def config(self) -> MapperConfig:
        """The current configuration snapshot."""
        return self._config

    def set_default_url(self, default_url: str | httpx.URL | None) -> None:
        """Set the URL used when a message carries no target URL header.

        Optional; without it, messages lacking the header fail with
        UnresolvedTargetError.
        """
        self._check_default_url(default_url)
        self.update_config(default_url=default_url)

    def set_extract_payload(self, extract_payload: bool) -> None:
        """Choose between mapping the payload (True) and the whole message (False)."""
        self.update_config(extract_payload=bool(extract_payload))

    def set_charset(self, charset: str) -> None:
        """Set the charset for text payloads and query parameters.

        Raises:
            UnsupportedCharsetError: If *charset* is unknown. The previous
                charset stays in effect.
        """
        self._check_charset(charset)
        self.update_config(charset=charset)

    def update_config(self, **changes: Any) -> MapperConfig:
        """Replace several configuration fields in one atomic swap."""
        if "charset" in changes:
            self._check_charset(changes["charset"])
        if "default_url" in changes:
            self._check_default_url(changes["default_url"])
        with self._config_lock:
            current = self._config.model_dump()
            current.update(changes)
            try:
                new_config = MapperConfig.model_validate(current)
            except ValidationError as e:
                raise MappingError(f"Invalid mapper configuration: {e}") from e
            self._config = new_config
        logger.debug("Mapper configuration updated: %s", new_config)
        return new_config

    @staticmethod
    def _check_charset(charset: str) -> None:
        if not is_supported_charset(charset):
            raise UnsupportedCharsetError(f"unsupported charset '{charset}'")

    @staticmethod
    def _check_default_url(default_url: str | httpx.URL | None) -> None:
        if default_url is None:
            return
        value = str(default_url) if isinstance(default_url, httpx.URL) else default_url
        if not isinstance(value, str) or not is_absolute_url(value):
            raise MalformedTargetError(f"Default URL {default_url!r} is not an absolute URL")

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    def map_to_request(self, message: Message) -> RequestDescriptor:
        """Map *message* to a fully assembled RequestDescriptor.

        Raises:
            UnresolvedTargetError: No URL header and no default URL.
            MalformedTargetError: The target URL is not a valid absolute URL.
            InvalidHeaderTypeError: The URL header is of an unrecognized type.
            MissingPayloadError: Body method, payload extraction on, no payload.
            InvalidPayloadShapeError: Query method with a non-parameter-map payload.
            UnsupportedPayloadTypeError: The payload cannot be serialized.
            MethodNotSupportedError: Payload extraction off with a query method.
        """
        if message is None:
            raise ValueError("message must not be None")

        # Single read; the rest of the call uses this snapshot only.
        config = self._config

        url = resolve_target_url(message, config.default_url)
        method = determine_method(message)

        try:
            if config.extract_payload:
                if method in BODY_METHODS:
                    descriptor = self._map_payload_body(message, url, method, config)
                else:
                    descriptor = self._map_payload_query(message, url, method, config)
            else:
                descriptor = self._map_envelope(message, url, method, config)
        except MappingError as e:
            if e.message is None:
                e.message = message
            raise

        logger.debug(
            "Mapped message to %s %s (content_type=%s, content_length=%d)",
            descriptor.method,
            descriptor.target_url,
            descriptor.content_type,
            descriptor.content_length,
        )
        return descriptor

    def _map_payload_body(
        self, message: Message, url: str, method: str, config: MapperConfig
    ) -> RequestDescriptor:
        if message.payload is None:
            raise MissingPayloadError(
                f"payload must not be None for a '{method}' request", message
            )
        logger.debug("Body path: serializing %s payload", type(message.payload).__name__)
        body = serialize_payload(message.payload, config.charset, self._object_serializer)
        return RequestDescriptor(
            target_url=url, method=method, content_type=body.content_type, body=body.content
        )

    def _map_payload_query(
        self, message: Message, url: str, method: str, config: MapperConfig
    ) -> RequestDescriptor:
        logger.debug("Query path: encoding payload as query parameters for %s", method)
        parameter_map = build_parameter_map(message.payload, method)
        url = add_query_parameters(url, parameter_map, config.charset)
        return RequestDescriptor(target_url=url, method=method)

    def _map_envelope(
        self, message: Message, url: str, method: str, config: MapperConfig
    ) -> RequestDescriptor:
        if method not in BODY_METHODS:
            raise MethodNotSupportedError(
                "POST or PUT request method is required when payload extraction is disabled, "
                f"got '{method}'",
                message,
            )
        logger.debug("Envelope path: serializing whole message for %s", method)
        body = serialize_payload(message, config.charset, self._object_serializer)
        return RequestDescriptor(
            target_url=url, method=method, content_type=body.content_type, body=body.content
        )
