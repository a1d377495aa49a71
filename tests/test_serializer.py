"""Tests for payload classification and serialization."""

import json
import pickle
import threading
from dataclasses import dataclass
from typing import Any

import pytest

from outbound_http.errors import UnsupportedPayloadTypeError
from outbound_http.serializer import (
    OCTET_STREAM,
    PayloadKind,
    PickleObjectSerializer,
    classify_payload,
    serialize_payload,
    structured_content_type,
)


@dataclass
class Order:
    order_id: str
    quantity: int


class Unreducible:
    def __reduce__(self) -> Any:
        raise RuntimeError("refusing to pickle")


class SerializerFailure(Exception):
    pass


class FailingSerializer:
    format_name = "broken"

    def dumps(self, obj: Any) -> bytes:
        raise SerializerFailure("backend unavailable")


class JsonObjectSerializer:
    """Alternative serializer used to check the collaborator seam."""

    format_name = "json"

    def dumps(self, obj: Any) -> bytes:
        return json.dumps(obj, sort_keys=True).encode("utf-8")


# =============================================================================
# Classification
# =============================================================================


class TestClassifyPayload:
    @pytest.mark.parametrize("payload", [b"abc", bytearray(b"abc"), memoryview(b"abc")])
    def test_bytes_like(self, payload: Any) -> None:
        assert classify_payload(payload).kind is PayloadKind.BYTES

    def test_str(self) -> None:
        assert classify_payload("hello").kind is PayloadKind.TEXT

    @pytest.mark.parametrize("payload", [{"a": 1}, [1, 2], 42, Order("o-1", 3)])
    def test_structured(self, payload: Any) -> None:
        classified = classify_payload(payload)
        assert classified.kind is PayloadKind.STRUCTURED
        assert classified.encoded is not None

    def test_none_unsupported(self) -> None:
        assert classify_payload(None).kind is PayloadKind.UNSUPPORTED

    def test_lambda_unsupported(self) -> None:
        classified = classify_payload(lambda: None)
        assert classified.kind is PayloadKind.UNSUPPORTED
        assert classified.error is not None

    def test_lock_unsupported(self) -> None:
        assert classify_payload(threading.Lock()).kind is PayloadKind.UNSUPPORTED

    def test_generator_unsupported(self) -> None:
        assert classify_payload(x for x in range(3)).kind is PayloadKind.UNSUPPORTED


# =============================================================================
# Serialization
# =============================================================================


class TestSerializePayload:
    def test_bytes_pass_through(self) -> None:
        data = bytes(range(256))
        body = serialize_payload(data, "UTF-8")
        assert body.content == data
        assert body.content_type == OCTET_STREAM

    def test_bytearray_converted_to_bytes(self) -> None:
        body = serialize_payload(bytearray(b"\x01\x02"), "UTF-8")
        assert body.content == b"\x01\x02"
        assert isinstance(body.content, bytes)

    def test_text_utf8(self) -> None:
        body = serialize_payload("hello", "UTF-8")
        assert body.content == "hello".encode("utf-8")
        assert body.content_type == "text/plain; charset=UTF-8"

    def test_text_uses_configured_charset(self) -> None:
        body = serialize_payload("café", "ISO-8859-1")
        assert body.content == b"caf\xe9"
        assert body.content_type == "text/plain; charset=ISO-8859-1"

    def test_text_not_encodable_in_charset(self) -> None:
        with pytest.raises(UnsupportedPayloadTypeError, match="US-ASCII"):
            serialize_payload("café", "US-ASCII")

    def test_structured_pickled(self) -> None:
        order = Order("o-1", 3)
        body = serialize_payload(order, "UTF-8")
        assert body.content_type == "application/x-python-serialized-object"
        assert pickle.loads(body.content) == order

    def test_unsupported_payload(self) -> None:
        with pytest.raises(UnsupportedPayloadTypeError, match="function"):
            serialize_payload(lambda: None, "UTF-8")

    def test_unsupported_chains_serializer_error(self) -> None:
        with pytest.raises(UnsupportedPayloadTypeError) as exc_info:
            serialize_payload(threading.Lock(), "UTF-8")
        assert exc_info.value.__cause__ is not None

    def test_deeply_nested_list_unsupported(self) -> None:
        nested: list = []
        for _ in range(100_000):
            nested = [nested]
        with pytest.raises(UnsupportedPayloadTypeError) as exc_info:
            serialize_payload(nested, "UTF-8")
        assert isinstance(exc_info.value.__cause__, RecursionError)

    def test_reduce_error_unsupported(self) -> None:
        with pytest.raises(UnsupportedPayloadTypeError) as exc_info:
            serialize_payload(Unreducible(), "UTF-8")
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_custom_serializer_error_unsupported(self) -> None:
        with pytest.raises(UnsupportedPayloadTypeError) as exc_info:
            serialize_payload({"a": 1}, "UTF-8", FailingSerializer())
        assert isinstance(exc_info.value.__cause__, SerializerFailure)

    def test_text_codec_failure_is_typed(self) -> None:
        """Any UnicodeError from the codec, not only UnicodeEncodeError, is typed."""
        with pytest.raises(UnsupportedPayloadTypeError, match="idna"):
            serialize_payload("a..b", "idna")

    def test_custom_object_serializer(self) -> None:
        body = serialize_payload({"b": 2, "a": 1}, "UTF-8", JsonObjectSerializer())
        assert body.content == b'{"a": 1, "b": 2}'
        assert body.content_type == "application/x-json-serialized-object"

    def test_custom_serializer_does_not_affect_bytes(self) -> None:
        body = serialize_payload(b"raw", "UTF-8", JsonObjectSerializer())
        assert body.content_type == OCTET_STREAM


class TestPickleObjectSerializer:
    def test_content_type(self) -> None:
        assert structured_content_type(PickleObjectSerializer()) == (
            "application/x-python-serialized-object"
        )

    def test_protocol_honoured(self) -> None:
        data = PickleObjectSerializer(protocol=2).dumps({"a": 1})
        assert data[:2] == b"\x80\x02"
