"""Conversion between native values and DynamoDB attribute values.

Built on boto3's ``TypeSerializer`` and ``TypeDeserializer``. Supported
native values are ``None``, ``str``, ``bool``, numbers (``int``, ``float``,
``Decimal``), bytes-like objects, sequences and string-keyed mappings.
Everything else is rejected with :class:`UnsupportedTypeError`. Sets are
rejected too: only the NULL, S, B, BOOL, N, L and M tags are produced.

``None`` and ``""`` both encode to ``{"NULL": True}``, so an empty string
reads back as ``None``. Build the codec with ``empty_string_as_null=False``
to store empty strings as ``{"S": ""}`` instead.

Numbers decode to ``int`` when the text is an integer and to ``Decimal``
otherwise. Floats are encoded from their ``repr``.
"""

from __future__ import annotations

import base64
import binascii
import decimal
from collections.abc import Mapping, Sequence, Set
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from .errors import UnknownTagError, UnsupportedTypeError, ValidationError

type NativeValue = (
    None | str | bool | int | float | Decimal | bytes | list[NativeValue] | dict[str, NativeValue]
)
type AttributeValue = dict[str, Any]

TAGS = frozenset({"NULL", "S", "B", "BOOL", "N", "L", "M"})

_BYTES_LIKE = (bytes, bytearray, memoryview)


def _finite_decimal(value: float | Decimal) -> Decimal:
    number = value if isinstance(value, Decimal) else Decimal(repr(value))
    if not number.is_finite():
        raise ValidationError(f"number must be finite: {value}")
    return number


class _Serializer(TypeSerializer):
    def __init__(self, *, empty_string_as_null: bool, binary_as_base64: bool) -> None:
        self._empty_string_as_null = empty_string_as_null
        self._binary_as_base64 = binary_as_base64

    def _prepare(self, value: Any) -> Any:
        if isinstance(value, str):
            if value == "" and self._empty_string_as_null:
                return None
            return value
        if isinstance(value, bool):
            return value
        if isinstance(value, (float, Decimal)):
            return _finite_decimal(value)
        if isinstance(value, _BYTES_LIKE):
            return bytes(value)
        if isinstance(value, Set):
            raise UnsupportedTypeError(type(value).__name__)
        if isinstance(value, Mapping):
            for k in value:
                if not isinstance(k, str):
                    raise ValidationError(f"map keys must be strings, got {type(k).__name__}")
            return value
        if isinstance(value, Sequence) and not isinstance(value, (list, tuple)):
            return list(value)
        return value

    def serialize(self, value: Any) -> AttributeValue:
        value = self._prepare(value)
        try:
            return super().serialize(value)
        except TypeError as err:
            raise UnsupportedTypeError(type(value).__name__) from err
        except decimal.DecimalException as err:
            raise ValidationError(f"number cannot be stored exactly: {value}") from err

    def _serialize_b(self, value: Any) -> Any:
        raw = bytes(super()._serialize_b(value))
        if self._binary_as_base64:
            return base64.b64encode(raw).decode("ascii")
        return raw


class _Deserializer(TypeDeserializer):
    def deserialize(self, value: Any) -> NativeValue:
        if not isinstance(value, Mapping) or len(value) != 1:
            raise UnknownTagError(repr(value))
        (tag,) = value.keys()
        if tag not in TAGS:
            raise UnknownTagError(str(tag))
        return super().deserialize(value)

    def _deserialize_s(self, value: Any) -> str:
        if not isinstance(value, str):
            raise ValidationError("S value must be a string")
        return value

    def _deserialize_bool(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise ValidationError("BOOL value must be a boolean")
        return value

    def _deserialize_n(self, value: Any) -> int | Decimal:
        if not isinstance(value, str):
            raise ValidationError("N value must be a string")
        try:
            return int(value)
        except ValueError:
            pass
        try:
            number = super()._deserialize_n(value)
        except decimal.DecimalException as err:
            raise ValidationError(f"invalid number: {value!r}") from err
        if not number.is_finite():
            raise ValidationError(f"invalid number: {value!r}")
        return number

    def _deserialize_b(self, value: Any) -> bytes:
        if isinstance(value, _BYTES_LIKE):
            return bytes(value)
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as err:
                raise ValidationError("B value is not valid base64") from err
        raise ValidationError("B value must be bytes or a base64 string")

    def _deserialize_l(self, value: Any) -> list[NativeValue]:
        if not isinstance(value, list):
            raise ValidationError("L value must be a list")
        return super()._deserialize_l(value)

    def _deserialize_m(self, value: Any) -> dict[str, NativeValue]:
        if not isinstance(value, Mapping):
            raise ValidationError("M value must be a map")
        return super()._deserialize_m(value)


class AttributeCodec:
    def __init__(self, *, empty_string_as_null: bool = True, binary_as_base64: bool = False) -> None:
        self._empty_string_as_null = empty_string_as_null
        self._serializer = _Serializer(
            empty_string_as_null=empty_string_as_null, binary_as_base64=binary_as_base64
        )
        self._deserializer = _Deserializer()

    @property
    def empty_string_as_null(self) -> bool:
        return self._empty_string_as_null

    def encode(self, value: Any) -> AttributeValue:
        return self._serializer.serialize(value)

    def encode_map(self, value: Mapping[Any, Any]) -> dict[str, AttributeValue]:
        return self.encode(dict(value))["M"]

    def decode(self, av: Any) -> NativeValue:
        return self._deserializer.deserialize(av)

    def decode_map(self, attrs: Mapping[str, Any]) -> dict[str, NativeValue]:
        return {str(k): self.decode(v) for k, v in attrs.items()}


_default_codec = AttributeCodec()


def encode(value: Any) -> AttributeValue:
    return _default_codec.encode(value)


def decode(av: Any) -> NativeValue:
    return _default_codec.decode(av)
