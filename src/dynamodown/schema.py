from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSchema:
    table_name: str
    hash_attribute: str
    hash_value: str
    range_attribute: str

    @classmethod
    def from_description(cls, description: Mapping[str, Any], *, hash_value: str) -> TableSchema:
        table = description.get("Table")
        if not isinstance(table, Mapping):
            raise ValidationError("describe_table response has no Table")

        table_name = str(table.get("TableName") or "")
        names: dict[str, str] = {}
        for entry in table.get("KeySchema") or []:
            key_type = str(entry.get("KeyType", "")).upper()
            attr_name = str(entry.get("AttributeName", ""))
            if key_type in {"HASH", "RANGE"} and attr_name:
                names[key_type] = attr_name

        if "HASH" not in names:
            raise ValidationError(f"table has no hash key: {table_name}")
        if "RANGE" not in names:
            raise ValidationError(f"table has no range key: {table_name}")

        return cls(
            table_name=table_name,
            hash_attribute=names["HASH"],
            hash_value=hash_value,
            range_attribute=names["RANGE"],
        )


def load_schema(client: Any, table_name: str, hash_value: str) -> TableSchema:
    if not table_name:
        raise ValidationError("table_name is required")
    if not hash_value:
        raise ValidationError("hash_value is required")

    try:
        resp = client.describe_table(TableName=table_name)
    except ClientError as err:
        raise map_client_error(err) from err

    schema = TableSchema.from_description(resp, hash_value=hash_value)
    if schema.table_name != table_name:
        schema = replace(schema, table_name=table_name)

    logger.debug(
        "loaded key schema for %s: hash=%s range=%s",
        table_name,
        schema.hash_attribute,
        schema.range_attribute,
    )
    return schema
