from __future__ import annotations

from .mocks import ANY, FakeDynamoDBClient, MemoryDynamoDBClient


def no_sleep(_: float) -> None:
    return None


def key_schema(hash_attribute: str = "pk", range_attribute: str = "sk") -> list[dict[str, str]]:
    return [
        {"AttributeName": hash_attribute, "KeyType": "HASH"},
        {"AttributeName": range_attribute, "KeyType": "RANGE"},
    ]


def describe_table_response(
    table_name: str, *, hash_attribute: str = "pk", range_attribute: str = "sk"
) -> dict[str, object]:
    return {
        "Table": {
            "TableName": table_name,
            "TableStatus": "ACTIVE",
            "KeySchema": key_schema(hash_attribute, range_attribute),
        }
    }


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "MemoryDynamoDBClient",
    "describe_table_response",
    "key_schema",
    "no_sleep",
]
