from __future__ import annotations

import enum
import logging
from collections import deque
from types import TracebackType
from typing import Any

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .codec import AttributeCodec
from .mapper import ItemMapper, Record
from .query import QueryPlan, RangeOptions, plan_query
from .schema import TableSchema

logger = logging.getLogger(__name__)


class IteratorState(enum.Enum):
    READY = "ready"
    FETCHING = "fetching"
    EXHAUSTED = "exhausted"


class RangeIterator:
    """Lazily walks one partition in range-key order, a page at a time.

    Iterating yields ``(key, serialized_value)`` tuples. Pages are requested
    one after another, never concurrently, and only when the buffered page
    has been consumed. ``limit`` caps the number of records returned over
    the iterator's whole life, independent of the provider page size.
    """

    def __init__(
        self,
        client: Any,
        schema: TableSchema,
        options: RangeOptions | None = None,
        *,
        mapper: ItemMapper | None = None,
        codec: AttributeCodec | None = None,
    ) -> None:
        self._client = client
        self._schema = schema
        self._mapper = mapper or ItemMapper(schema, codec)
        self._plan: QueryPlan = plan_query(schema, options, codec=self._mapper.codec)

        self._buffer: deque[Record] = deque()
        self._last_page = False
        self._start_key: dict[str, Any] | None = None
        self._returned = 0
        self._pages = 0
        self._state = IteratorState.READY

    @property
    def state(self) -> IteratorState:
        return self._state

    @property
    def plan(self) -> QueryPlan:
        return self._plan

    @property
    def returned(self) -> int:
        return self._returned

    @property
    def pages_fetched(self) -> int:
        return self._pages

    def __iter__(self) -> RangeIterator:
        return self

    def __next__(self) -> tuple[str, str]:
        record = self.next_record()
        if record is None:
            raise StopIteration
        return record.key, record.serialized_value()

    def __enter__(self) -> RangeIterator:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def next_record(self) -> Record | None:
        while True:
            if self._state is IteratorState.EXHAUSTED:
                return None

            max_records = self._plan.max_records
            if max_records is not None and self._returned >= max_records:
                self._seal()
                return None

            if self._buffer:
                self._returned += 1
                return self._buffer.popleft()

            if self._last_page:
                self._seal()
                return None

            self._fetch_page()

    def close(self) -> None:
        self._buffer.clear()
        self._seal()

    def _seal(self) -> None:
        if self._state is not IteratorState.EXHAUSTED:
            logger.debug(
                "iterator on %s exhausted after %d records in %d pages",
                self._schema.table_name,
                self._returned,
                self._pages,
            )
        self._state = IteratorState.EXHAUSTED

    def _fetch_page(self) -> None:
        req = self._plan.to_request(self._schema.table_name, exclusive_start_key=self._start_key)

        self._state = IteratorState.FETCHING
        try:
            try:
                resp = self._client.query(**req)
            except ClientError as err:
                raise map_client_error(err) from err
            items = resp.get("Items") or []
            records = [self._mapper.to_record(item) for item in items]
        finally:
            self._state = IteratorState.READY

        self._buffer.extend(records)
        self._pages += 1
        last_key = resp.get("LastEvaluatedKey")
        self._start_key = dict(last_key) if last_key else None
        if self._start_key is None:
            self._last_page = True

        logger.debug(
            "fetched page %d from %s: %d items, more=%s",
            self._pages,
            self._schema.table_name,
            len(items),
            not self._last_page,
        )
