from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .errors import BatchRetryExceededError, ValidationError
from .mapper import ItemMapper, normalize_key
from .schema import TableSchema

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 25

type OperationType = Literal["put", "del"]


@dataclass(frozen=True)
class WriteOperation:
    type: OperationType
    key: str
    value: Any = None

    def __post_init__(self) -> None:
        if self.type not in ("put", "del"):
            raise ValidationError(f"unsupported batch operation: {self.type!r}")
        object.__setattr__(self, "key", normalize_key(self.key))

    @staticmethod
    def put(key: str, value: Any) -> WriteOperation:
        return WriteOperation(type="put", key=key, value=value)

    @staticmethod
    def delete(key: str) -> WriteOperation:
        return WriteOperation(type="del", key=key)

    @staticmethod
    def coerce(op: WriteOperation | Mapping[str, Any]) -> WriteOperation:
        if isinstance(op, WriteOperation):
            return op
        if not isinstance(op, Mapping):
            raise ValidationError(f"batch operation must be a mapping, got {type(op).__name__}")
        return WriteOperation(type=op.get("type", ""), key=op.get("key"), value=op.get("value"))


def _backoff_seconds(attempt: int) -> float:
    seconds = 0.05 * (2.0 ** (attempt - 1))
    if seconds > 1.0:
        return 1.0
    return seconds


def _last_per_key(operations: Iterable[WriteOperation]) -> list[WriteOperation]:
    latest: dict[str, WriteOperation] = {}
    for op in operations:
        latest.pop(op.key, None)
        latest[op.key] = op
    return list(latest.values())


class BatchWriter:
    """Writes any number of operations through ``batch_write_item``.

    Each round sends at most ``batch_size`` entries: whatever the previous
    round left unprocessed goes first, new entries fill the rest. Rounds that
    come back with unprocessed entries back off exponentially. The retry
    count resets whenever a round commits at least one entry; after
    ``max_retries`` rounds in a row that commit nothing the write fails with
    :class:`BatchRetryExceededError`. ``max_retries=None`` retries forever.
    """

    def __init__(
        self,
        client: Any,
        schema: TableSchema,
        *,
        mapper: ItemMapper | None = None,
        batch_size: int = MAX_BATCH_SIZE,
        max_retries: int | None = 5,
        sleep: Callable[[float], None] | None = time.sleep,
    ) -> None:
        if batch_size <= 0 or batch_size > MAX_BATCH_SIZE:
            raise ValidationError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        if max_retries is not None and max_retries < 0:
            raise ValidationError("max_retries must be >= 0")

        self._client = client
        self._schema = schema
        self._mapper = mapper or ItemMapper(schema)
        self._batch_size = batch_size
        self._max_retries = max_retries
        self._sleep = sleep

    def to_request(self, op: WriteOperation) -> dict[str, Any]:
        if op.type == "del":
            return {"DeleteRequest": {"Key": self._mapper.to_key(op.key)}}
        return {"PutRequest": {"Item": self._mapper.to_item(op.key, op.value)}}

    def write(self, operations: Iterable[WriteOperation | Mapping[str, Any]]) -> int:
        ops = _last_per_key(WriteOperation.coerce(op) for op in operations)
        pending = deque(self.to_request(op) for op in ops)
        unprocessed: list[dict[str, Any]] = []
        table_name = self._schema.table_name
        attempts = 0
        calls = 0

        while pending or unprocessed:
            chunk = list(unprocessed)
            while pending and len(chunk) < self._batch_size:
                chunk.append(pending.popleft())

            try:
                resp = self._client.batch_write_item(RequestItems={table_name: chunk})
            except ClientError as err:
                raise map_client_error(err) from err
            calls += 1

            unprocessed = list(resp.get("UnprocessedItems", {}).get(table_name) or [])
            logger.debug(
                "batch round %d on %s: sent=%d unprocessed=%d pending=%d",
                calls,
                table_name,
                len(chunk),
                len(unprocessed),
                len(pending),
            )

            if len(unprocessed) < len(chunk):
                attempts = 0
            if not unprocessed:
                continue

            if self._max_retries is not None and attempts >= self._max_retries:
                raise BatchRetryExceededError(
                    operation="batch_write", unprocessed_count=len(unprocessed) + len(pending)
                )
            attempts += 1
            if self._sleep is not None:
                self._sleep(_backoff_seconds(attempts))

        return calls
