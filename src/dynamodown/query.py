"""Translation of range options into DynamoDB ``Query`` parameters.

When both a lower and an upper bound are given the range condition is a
single ``BETWEEN``, which DynamoDB evaluates inclusively on both ends. An
exclusive ``gt``/``lt`` is therefore treated as inclusive in that case.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .codec import AttributeCodec
from .errors import ValidationError
from .schema import TableSchema


@dataclass(frozen=True)
class Bound:
    key: str
    inclusive: bool


def _bound_key(key: Any) -> str | None:
    if isinstance(key, (bytes, bytearray)):
        key = bytes(key).decode("utf-8")
    # Empty strings count as absent, like a missing option.
    if key is None or key == "":
        return None
    return str(key)


def _bound(inclusive_key: Any, exclusive_key: Any) -> Bound | None:
    key = _bound_key(inclusive_key)
    if key is not None:
        return Bound(key=key, inclusive=True)
    key = _bound_key(exclusive_key)
    if key is not None:
        return Bound(key=key, inclusive=False)
    return None


@dataclass(frozen=True)
class RangeOptions:
    gt: str | None = None
    gte: str | None = None
    lt: str | None = None
    lte: str | None = None
    limit: int | None = None
    reverse: bool = False
    page_size: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and (isinstance(self.limit, bool) or not isinstance(self.limit, int)):
            raise ValidationError("limit must be an integer")
        if self.page_size is not None:
            if isinstance(self.page_size, bool) or not isinstance(self.page_size, int):
                raise ValidationError("page_size must be an integer")
            if self.page_size <= 0:
                raise ValidationError("page_size must be > 0")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> RangeOptions:
        if not options:
            return cls()
        unknown = set(options).difference({"gt", "gte", "lt", "lte", "limit", "reverse", "page_size"})
        if unknown:
            raise ValidationError(f"unknown iterator options: {sorted(unknown)}")
        return cls(
            gt=options.get("gt"),
            gte=options.get("gte"),
            lt=options.get("lt"),
            lte=options.get("lte"),
            limit=options.get("limit"),
            reverse=bool(options.get("reverse", False)),
            page_size=options.get("page_size"),
        )

    @property
    def lower_bound(self) -> Bound | None:
        return _bound(self.gte, self.gt)

    @property
    def upper_bound(self) -> Bound | None:
        return _bound(self.lte, self.lt)

    @property
    def max_records(self) -> int | None:
        if self.limit is None or self.limit < 0:
            return None
        return self.limit


@dataclass(frozen=True)
class QueryPlan:
    key_conditions: dict[str, Any]
    limit: int | None = None
    scan_forward: bool = True
    max_records: int | None = field(default=None, compare=False)

    def to_request(
        self, table_name: str, *, exclusive_start_key: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        req: dict[str, Any] = {
            "TableName": table_name,
            "KeyConditions": self.key_conditions,
            "ScanIndexForward": self.scan_forward,
        }
        if self.limit is not None:
            req["Limit"] = self.limit
        if exclusive_start_key:
            req["ExclusiveStartKey"] = dict(exclusive_start_key)
        return req


def plan_query(
    schema: TableSchema,
    options: RangeOptions | None = None,
    *,
    codec: AttributeCodec | None = None,
) -> QueryPlan:
    options = options or RangeOptions()
    codec = codec or AttributeCodec()

    conditions: dict[str, Any] = {
        schema.hash_attribute: {
            "ComparisonOperator": "EQ",
            "AttributeValueList": [codec.encode(schema.hash_value)],
        }
    }

    lower = options.lower_bound
    upper = options.upper_bound
    if lower is not None and upper is not None:
        conditions[schema.range_attribute] = {
            "ComparisonOperator": "BETWEEN",
            "AttributeValueList": [codec.encode(lower.key), codec.encode(upper.key)],
        }
    elif lower is not None:
        conditions[schema.range_attribute] = {
            "ComparisonOperator": "GE" if lower.inclusive else "GT",
            "AttributeValueList": [codec.encode(lower.key)],
        }
    elif upper is not None:
        conditions[schema.range_attribute] = {
            "ComparisonOperator": "LE" if upper.inclusive else "LT",
            "AttributeValueList": [codec.encode(upper.key)],
        }

    max_records = options.max_records
    page_limit = options.page_size
    if max_records:
        page_limit = max_records if page_limit is None else min(page_limit, max_records)

    return QueryPlan(
        key_conditions=conditions,
        limit=page_limit,
        scan_forward=not options.reverse,
        max_records=max_records,
    )
