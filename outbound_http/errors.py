"""Error taxonomy for outbound request mapping.

Every failure is terminal for the current mapping call and is raised
synchronously. Nothing here is retried; recovery belongs to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from outbound_http.models import Message


class MappingError(Exception):
    """Base class for mapping errors.

    Carries the message being mapped (when one was in scope) so callers
    can route the failure without keeping their own reference.
    """

    def __init__(self, reason: str, message: Message | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.message = message


class MessageDeliveryError(MappingError):
    """The message cannot be delivered at all."""


class UnresolvedTargetError(MessageDeliveryError):
    """No target URL header and no default URL configured."""


class MalformedTargetError(MappingError):
    """A header value or constructed string is not a valid absolute URL."""


class InvalidHeaderTypeError(MappingError):
    """The target URL header is present but of an unrecognized type."""

    def __init__(
        self,
        reason: str,
        message: Message | None = None,
        header_value: Any = None,
    ) -> None:
        super().__init__(reason, message)
        self.header_value = header_value


class MissingPayloadError(MappingError):
    """Body-bearing method with payload extraction enabled, but no payload."""


class InvalidPayloadShapeError(MappingError):
    """Query-path payload is not a string-keyed map of string/string-sequence values."""


class UnsupportedPayloadTypeError(MappingError):
    """The payload has no defined serialization."""


class MethodNotSupportedError(MappingError):
    """Payload extraction disabled with a method that cannot carry a body."""


class UnsupportedCharsetError(MappingError):
    """A configured charset name is not known to the codec registry."""


class ConfigError(MappingError):
    """Raised when configuration loading fails."""
