from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from botocore.exceptions import ClientError


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()


def _assert_match(expected: Any, actual: Any, *, path: str) -> None:
    if expected is ANY:
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            raise AssertionError(f"{path}: expected dict, got {type(actual).__name__}")
        for k, v in expected.items():
            if k not in actual:
                raise AssertionError(f"{path}: missing key {k!r}")
            _assert_match(v, actual[k], path=f"{path}.{k}")
        return

    if isinstance(expected, list):
        if not isinstance(actual, list):
            raise AssertionError(f"{path}: expected list, got {type(actual).__name__}")
        if len(expected) != len(actual):
            raise AssertionError(f"{path}: expected {len(expected)} items, got {len(actual)}")
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            _assert_match(e, a, path=f"{path}[{i}]")
        return

    if expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


@dataclass(frozen=True)
class ExpectedCall:
    method: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None


class FakeDynamoDBClient:
    """Scripted client: calls must arrive in the order they were expected."""

    def __init__(self) -> None:
        self._expected: list[ExpectedCall] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        method: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._expected.append(ExpectedCall(method=method, expected=expected, response=response, error=error))

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected calls: {self._expected!r}")

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [req for name, req in self.calls if name == method]

    def _handle(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((method, copy.deepcopy(req)))
        if not self._expected:
            raise AssertionError(f"unexpected call: {method}")

        call = self._expected.pop(0)
        if call.method != method:
            raise AssertionError(f"expected {call.method}, got {method}")

        if callable(call.expected):
            call.expected(req)
        elif call.expected is not None:
            _assert_match(dict(call.expected), req, path=method)

        if call.error is not None:
            raise call.error

        return dict(call.response or {})

    def describe_table(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("describe_table", kwargs)

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("get_item", kwargs)

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("put_item", kwargs)

    def delete_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("delete_item", kwargs)

    def query(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("query", kwargs)

    def batch_write_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("batch_write_item", kwargs)


def _client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def _scalar(av: Mapping[str, Any]) -> Any:
    (tag, value), *_ = av.items()
    if tag == "N":
        return Decimal(value)
    if tag == "B":
        return bytes(value)
    return value


def _matches(value: Any, condition: Mapping[str, Any]) -> bool:
    op = condition["ComparisonOperator"]
    args = [_scalar(av) for av in condition.get("AttributeValueList", [])]
    if op == "EQ":
        return value == args[0]
    if op == "LT":
        return value < args[0]
    if op == "LE":
        return value <= args[0]
    if op == "GT":
        return value > args[0]
    if op == "GE":
        return value >= args[0]
    if op == "BETWEEN":
        return args[0] <= value <= args[1]
    if op == "BEGINS_WITH":
        return value.startswith(args[0])
    raise AssertionError(f"unsupported comparison operator: {op}")


@dataclass
class _MemoryTable:
    name: str
    hash_attribute: str
    range_attribute: str
    items: dict[tuple[Any, Any], dict[str, Any]] = field(default_factory=dict)

    def key_of(self, item: Mapping[str, Any]) -> tuple[Any, Any]:
        return _scalar(item[self.hash_attribute]), _scalar(item[self.range_attribute])


class MemoryDynamoDBClient:
    """In-memory stand-in for the DynamoDB operations a store uses.

    ``unprocessed`` may be set to a callable that receives each
    ``batch_write_item`` entry list and returns the entries to report back as
    unprocessed; those entries are not applied.
    """

    def __init__(self, *, page_size: int | None = None) -> None:
        self._tables: dict[str, _MemoryTable] = {}
        self.page_size = page_size
        self.unprocessed: Callable[[list[dict[str, Any]]], list[dict[str, Any]]] | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def create_table(
        self,
        *,
        TableName: str,  # noqa: N803
        KeySchema: list[dict[str, str]],  # noqa: N803
        **_: Any,
    ) -> dict[str, Any]:
        names = {entry["KeyType"]: entry["AttributeName"] for entry in KeySchema}
        self._tables[TableName] = _MemoryTable(
            name=TableName,
            hash_attribute=names["HASH"],
            range_attribute=names["RANGE"],
        )
        return {"TableDescription": {"TableName": TableName, "KeySchema": list(KeySchema)}}

    def count(self, table_name: str, hash_value: Any = None) -> int:
        items = self._table(table_name, "Scan").items
        if hash_value is None:
            return len(items)
        return sum(1 for k in items if k[0] == hash_value)

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [req for name, req in self.calls if name == method]

    def _table(self, name: str, operation: str) -> _MemoryTable:
        table = self._tables.get(name)
        if table is None:
            raise _client_error(
                "ResourceNotFoundException", f"Requested resource not found: {name}", operation
            )
        return table

    def describe_table(self, *, TableName: str) -> dict[str, Any]:  # noqa: N803
        self.calls.append(("describe_table", {"TableName": TableName}))
        table = self._table(TableName, "DescribeTable")
        return {
            "Table": {
                "TableName": table.name,
                "TableStatus": "ACTIVE",
                "KeySchema": [
                    {"AttributeName": table.hash_attribute, "KeyType": "HASH"},
                    {"AttributeName": table.range_attribute, "KeyType": "RANGE"},
                ],
            }
        }

    def get_item(self, *, TableName: str, Key: dict[str, Any], **_: Any) -> dict[str, Any]:  # noqa: N803
        self.calls.append(("get_item", {"TableName": TableName, "Key": Key}))
        table = self._table(TableName, "GetItem")
        item = table.items.get(table.key_of(Key))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, *, TableName: str, Item: dict[str, Any], **_: Any) -> dict[str, Any]:  # noqa: N803
        self.calls.append(("put_item", {"TableName": TableName, "Item": Item}))
        table = self._table(TableName, "PutItem")
        table.items[table.key_of(Item)] = copy.deepcopy(Item)
        return {}

    def delete_item(self, *, TableName: str, Key: dict[str, Any], **_: Any) -> dict[str, Any]:  # noqa: N803
        self.calls.append(("delete_item", {"TableName": TableName, "Key": Key}))
        table = self._table(TableName, "DeleteItem")
        table.items.pop(table.key_of(Key), None)
        return {}

    def query(
        self,
        *,
        TableName: str,  # noqa: N803
        KeyConditions: dict[str, Any],  # noqa: N803
        ScanIndexForward: bool = True,  # noqa: N803
        Limit: int | None = None,  # noqa: N803
        ExclusiveStartKey: dict[str, Any] | None = None,  # noqa: N803
        **_: Any,
    ) -> dict[str, Any]:
        self.calls.append(
            (
                "query",
                {
                    "TableName": TableName,
                    "KeyConditions": KeyConditions,
                    "ScanIndexForward": ScanIndexForward,
                    "Limit": Limit,
                    "ExclusiveStartKey": ExclusiveStartKey,
                },
            )
        )
        table = self._table(TableName, "Query")

        hash_cond = KeyConditions.get(table.hash_attribute)
        if hash_cond is None or hash_cond.get("ComparisonOperator") != "EQ":
            raise _client_error("ValidationException", "Query condition missed key schema element", "Query")
        range_cond = KeyConditions.get(table.range_attribute)

        keys = sorted(
            (
                k
                for k in table.items
                if _matches(k[0], hash_cond) and (range_cond is None or _matches(k[1], range_cond))
            ),
            key=lambda k: k[1],
            reverse=not ScanIndexForward,
        )

        if ExclusiveStartKey:
            start = table.key_of(ExclusiveStartKey)
            if ScanIndexForward:
                keys = [k for k in keys if k[1] > start[1]]
            else:
                keys = [k for k in keys if k[1] < start[1]]

        limits = [v for v in (Limit, self.page_size) if v is not None]
        page_limit = min(limits) if limits else None
        page = keys if page_limit is None else keys[:page_limit]

        out: dict[str, Any] = {
            "Items": [copy.deepcopy(table.items[k]) for k in page],
            "Count": len(page),
        }
        if page_limit is not None and len(keys) > page_limit:
            last = table.items[page[-1]]
            out["LastEvaluatedKey"] = {
                table.hash_attribute: copy.deepcopy(last[table.hash_attribute]),
                table.range_attribute: copy.deepcopy(last[table.range_attribute]),
            }
        return out

    def batch_write_item(
        self, *, RequestItems: dict[str, list[dict[str, Any]]], **_: Any  # noqa: N803
    ) -> dict[str, Any]:
        self.calls.append(("batch_write_item", {"RequestItems": copy.deepcopy(RequestItems)}))

        unprocessed: dict[str, list[dict[str, Any]]] = {}
        for table_name, entries in RequestItems.items():
            table = self._table(table_name, "BatchWriteItem")
            if not entries or len(entries) > 25:
                raise _client_error(
                    "ValidationException", "Member must have length between 1 and 25", "BatchWriteItem"
                )

            skipped = list(self.unprocessed(list(entries))) if self.unprocessed is not None else []
            for entry in entries:
                if entry in skipped:
                    continue
                if "PutRequest" in entry:
                    item = entry["PutRequest"]["Item"]
                    table.items[table.key_of(item)] = copy.deepcopy(item)
                else:
                    table.items.pop(table.key_of(entry["DeleteRequest"]["Key"]), None)
            if skipped:
                unprocessed[table_name] = skipped

        return {"UnprocessedItems": unprocessed}
