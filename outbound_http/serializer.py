"""Payload Serializer - Converts a payload into body bytes and a content type.

Payloads are classified once into a closed set of kinds, then encoded:

    BYTES        bytes/bytearray/memoryview, passed through unchanged
    TEXT         str, encoded in the configured charset
    STRUCTURED   anything the object serializer can encode
    UNSUPPORTED  everything else, rejected
"""

from __future__ import annotations

import pickle
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from outbound_http.errors import UnsupportedPayloadTypeError

OCTET_STREAM = "application/octet-stream"


class ObjectSerializer(Protocol):
    """Encodes structured values for the STRUCTURED payload kind."""

    format_name: str

    def dumps(self, obj: Any) -> bytes: ...


class PickleObjectSerializer:
    """Default object serializer backed by pickle."""

    format_name = "python"

    def __init__(self, protocol: int = pickle.DEFAULT_PROTOCOL) -> None:
        self._protocol = protocol

    def dumps(self, obj: Any) -> bytes:
        return pickle.dumps(obj, protocol=self._protocol)


DEFAULT_OBJECT_SERIALIZER = PickleObjectSerializer()


class PayloadKind(str, Enum):
    BYTES = "bytes"
    TEXT = "text"
    STRUCTURED = "structured"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ClassifiedPayload:
    """A payload tagged with its kind.

    For STRUCTURED payloads, ``encoded`` holds the serializer output so the
    value is only serialized once. For UNSUPPORTED, ``error`` holds the
    reason the serializer rejected it (if it was tried).
    """

    kind: PayloadKind
    payload: Any
    encoded: bytes | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class SerializedBody:
    content: bytes
    content_type: str


def structured_content_type(serializer: ObjectSerializer) -> str:
    return f"application/x-{serializer.format_name}-serialized-object"


def classify_payload(
    payload: Any,
    object_serializer: ObjectSerializer = DEFAULT_OBJECT_SERIALIZER,
) -> ClassifiedPayload:
    """Tag *payload* with its PayloadKind.

    Anything other than bytes-like or str is handed to *object_serializer*;
    values it refuses classify as UNSUPPORTED.
    """
    if payload is None:
        return ClassifiedPayload(PayloadKind.UNSUPPORTED, payload)
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return ClassifiedPayload(PayloadKind.BYTES, payload)
    if isinstance(payload, str):
        return ClassifiedPayload(PayloadKind.TEXT, payload)
    try:
        encoded = object_serializer.dumps(payload)
    except Exception as e:
        # Serializers fail in many ways (PicklingError, RecursionError, custom
        # __reduce__ errors); any failure means the value has no serialization.
        return ClassifiedPayload(PayloadKind.UNSUPPORTED, payload, error=e)
    return ClassifiedPayload(PayloadKind.STRUCTURED, payload, encoded=encoded)


def serialize_payload(
    payload: Any,
    charset: str,
    object_serializer: ObjectSerializer = DEFAULT_OBJECT_SERIALIZER,
) -> SerializedBody:
    """Encode *payload* as request body bytes.

    Raises:
        UnsupportedPayloadTypeError: If the payload has no defined serialization,
            or a text payload cannot be encoded in *charset*.
    """
    classified = classify_payload(payload, object_serializer)

    if classified.kind is PayloadKind.BYTES:
        return SerializedBody(bytes(classified.payload), OCTET_STREAM)

    if classified.kind is PayloadKind.TEXT:
        try:
            content = classified.payload.encode(charset)
        except UnicodeError as e:
            raise UnsupportedPayloadTypeError(
                f"Text payload cannot be encoded as {charset}: {e}"
            ) from e
        return SerializedBody(content, f"text/plain; charset={charset}")

    if classified.kind is PayloadKind.STRUCTURED:
        assert classified.encoded is not None
        return SerializedBody(classified.encoded, structured_content_type(object_serializer))

    reason = (
        f"payload must be bytes, str, or a value serializable as "
        f"'{object_serializer.format_name}' for a 'POST' or 'PUT' request, "
        f"got {type(payload).__name__}"
    )
    if classified.error is not None:
        raise UnsupportedPayloadTypeError(f"{reason}: {classified.error}") from classified.error
    raise UnsupportedPayloadTypeError(reason)
