from __future__ import annotations

import pytest

from dynamodown import Bound, RangeOptions, TableSchema, ValidationError, plan_query


@pytest.fixture()
def schema() -> TableSchema:
    return TableSchema(table_name="tbl", hash_attribute="pk", hash_value="H", range_attribute="sk")


_HASH_EQ = {"ComparisonOperator": "EQ", "AttributeValueList": [{"S": "H"}]}


def test_unbounded_scan_only_constrains_hash(schema: TableSchema) -> None:
    plan = plan_query(schema)
    assert plan.key_conditions == {"pk": _HASH_EQ}
    assert plan.limit is None
    assert plan.scan_forward is True
    assert plan.max_records is None


def test_both_bounds_collapse_to_between(schema: TableSchema) -> None:
    plan = plan_query(schema, RangeOptions(gte="a", lt="m"))
    assert plan.key_conditions == {
        "pk": _HASH_EQ,
        "sk": {"ComparisonOperator": "BETWEEN", "AttributeValueList": [{"S": "a"}, {"S": "m"}]},
    }


def test_between_ignores_exclusive_flags(schema: TableSchema) -> None:
    plan = plan_query(schema, RangeOptions(gt="a", lt="m"))
    assert plan.key_conditions["sk"]["ComparisonOperator"] == "BETWEEN"


@pytest.mark.parametrize(
    ("options", "op", "key"),
    [
        (RangeOptions(gte="a"), "GE", "a"),
        (RangeOptions(gt="a"), "GT", "a"),
        (RangeOptions(lte="m"), "LE", "m"),
        (RangeOptions(lt="m"), "LT", "m"),
    ],
)
def test_single_bounds(schema: TableSchema, options: RangeOptions, op: str, key: str) -> None:
    plan = plan_query(schema, options)
    assert plan.key_conditions == {
        "pk": _HASH_EQ,
        "sk": {"ComparisonOperator": op, "AttributeValueList": [{"S": key}]},
    }


def test_inclusive_variant_wins_when_both_given() -> None:
    options = RangeOptions(gt="a", gte="b", lt="y", lte="z")
    assert options.lower_bound == Bound(key="b", inclusive=True)
    assert options.upper_bound == Bound(key="z", inclusive=True)


def test_empty_string_bounds_are_absent(schema: TableSchema) -> None:
    options = RangeOptions(gt="", lt="m")
    assert options.lower_bound is None
    assert plan_query(schema, options).key_conditions["sk"]["ComparisonOperator"] == "LT"


def test_limit_and_reverse(schema: TableSchema) -> None:
    plan = plan_query(schema, RangeOptions(limit=5, reverse=True))
    assert plan.limit == 5
    assert plan.max_records == 5
    assert plan.scan_forward is False


@pytest.mark.parametrize("limit", [None, -1])
def test_no_limit(schema: TableSchema, limit: int | None) -> None:
    plan = plan_query(schema, RangeOptions(limit=limit))
    assert plan.limit is None
    assert plan.max_records is None


def test_page_size_caps_pages_but_not_records(schema: TableSchema) -> None:
    plan = plan_query(schema, RangeOptions(limit=10, page_size=3))
    assert plan.limit == 3
    assert plan.max_records == 10

    assert plan_query(schema, RangeOptions(limit=2, page_size=3)).limit == 2
    assert plan_query(schema, RangeOptions(page_size=3)).limit == 3


def test_to_request(schema: TableSchema) -> None:
    plan = plan_query(schema, RangeOptions(gte="a", limit=2))
    req = plan.to_request("tbl", exclusive_start_key={"pk": {"S": "H"}, "sk": {"S": "b"}})
    assert req == {
        "TableName": "tbl",
        "KeyConditions": plan.key_conditions,
        "ScanIndexForward": True,
        "Limit": 2,
        "ExclusiveStartKey": {"pk": {"S": "H"}, "sk": {"S": "b"}},
    }
    assert "ExclusiveStartKey" not in plan.to_request("tbl")


def test_from_mapping_accepts_leveldown_options() -> None:
    options = RangeOptions.from_mapping({"gte": "a", "limit": -1, "reverse": True})
    assert options == RangeOptions(gte="a", limit=-1, reverse=True)
    assert RangeOptions.from_mapping(None) == RangeOptions()


def test_from_mapping_rejects_unknown_options() -> None:
    with pytest.raises(ValidationError, match="unknown iterator options"):
        RangeOptions.from_mapping({"start": "a"})


@pytest.mark.parametrize(
    "kwargs",
    [{"limit": "5"}, {"limit": True}, {"page_size": 0}, {"page_size": 1.5}],
)
def test_invalid_numeric_options(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        RangeOptions(**kwargs)
