from __future__ import annotations

import base64
import json
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .codec import AttributeCodec, AttributeValue, NativeValue
from .errors import ValidationError
from .schema import TableSchema


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps_value(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=_json_default)


@dataclass(frozen=True)
class Record:
    key: str
    value: dict[str, NativeValue]

    def serialized_value(self) -> str:
        return dumps_value(self.value)


def normalize_key(key: Any) -> str:
    if isinstance(key, (bytes, bytearray)):
        key = bytes(key).decode("utf-8")
    if not isinstance(key, str) or not key:
        raise ValidationError("key must be a non-empty string")
    return key


def load_value(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8")
    if not isinstance(value, str):
        raise ValidationError(f"value must be JSON text or a mapping, got {type(value).__name__}")
    if not value:
        return {}

    try:
        parsed = json.loads(value, parse_float=Decimal)
    except json.JSONDecodeError as err:
        raise ValidationError("value is not valid JSON") from err
    if not isinstance(parsed, dict):
        raise ValidationError("value must be a JSON object")
    return parsed


class ItemMapper:
    def __init__(self, schema: TableSchema, codec: AttributeCodec | None = None) -> None:
        self._schema = schema
        self._codec = codec or AttributeCodec()

    @property
    def schema(self) -> TableSchema:
        return self._schema

    @property
    def codec(self) -> AttributeCodec:
        return self._codec

    def to_item(self, key: Any, value: Any = None) -> dict[str, AttributeValue]:
        data = load_value(value)
        data[self._schema.hash_attribute] = self._schema.hash_value
        data[self._schema.range_attribute] = normalize_key(key)
        return self._codec.encode_map(data)

    def to_key(self, key: Any) -> dict[str, AttributeValue]:
        return {
            self._schema.hash_attribute: self._codec.encode(self._schema.hash_value),
            self._schema.range_attribute: self._codec.encode(normalize_key(key)),
        }

    def to_record(self, item: Mapping[str, Any]) -> Record:
        value = self._codec.decode_map(item)
        key = value.pop(self._schema.range_attribute, None)
        value.pop(self._schema.hash_attribute, None)
        if not isinstance(key, str) or not key:
            raise ValidationError(f"item has no string range key: {self._schema.range_attribute}")
        return Record(key=key, value=value)
