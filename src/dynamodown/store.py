from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from types import TracebackType
from typing import Any, Literal

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .batch import MAX_BATCH_SIZE, BatchWriter, WriteOperation
from .codec import AttributeCodec
from .config import StoreConfig
from .errors import NotFoundError, NotOpenError, ValidationError
from .iterator import RangeIterator
from .mapper import ItemMapper, dumps_value
from .query import RangeOptions
from .schema import TableSchema, load_schema

logger = logging.getLogger(__name__)

type ValueEncoding = Literal["utf8", "json"]


class DynamoStore:
    """Ordered key-value store over a single partition of a DynamoDB table.

    Every record lives under the configured hash key value; the logical key
    is stored in the table's range key attribute and the value's JSON object
    fields become the remaining item attributes.
    """

    def __init__(
        self,
        client: Any,
        config: StoreConfig,
        *,
        codec: AttributeCodec | None = None,
        batch_size: int = MAX_BATCH_SIZE,
        max_batch_retries: int | None = 5,
        sleep: Callable[[float], None] | None = time.sleep,
    ) -> None:
        self._client = client
        self._config = config
        self._codec = codec or AttributeCodec()
        self._batch_size = batch_size
        self._max_batch_retries = max_batch_retries
        self._sleep = sleep
        self._schema: TableSchema | None = None
        self._mapper: ItemMapper | None = None

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def location(self) -> str:
        return self._config.location

    @property
    def is_open(self) -> bool:
        return self._schema is not None

    @property
    def schema(self) -> TableSchema:
        if self._schema is None:
            raise NotOpenError(f"store is not open: {self.location}")
        return self._schema

    def open(self) -> DynamoStore:
        if self._schema is None:
            schema = load_schema(self._client, self._config.table_name, self._config.hash_value)
            self._mapper = ItemMapper(schema, self._codec)
            self._schema = schema
            logger.debug("opened store %s", self.location)
        return self

    def close(self) -> None:
        if self._schema is not None:
            logger.debug("closed store %s", self.location)
        self._schema = None
        self._mapper = None

    def __enter__(self) -> DynamoStore:
        return self.open()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def get(
        self,
        key: Any,
        *,
        as_buffer: bool = True,
        value_encoding: ValueEncoding = "utf8",
    ) -> bytes | str:
        """Read one record.

        ``value_encoding="json"`` returns the whole stored object as JSON text.
        The default ``"utf8"`` returns its ``value`` attribute: strings as-is,
        anything else as JSON text. A record without a ``value`` attribute
        raises :class:`ValidationError` in that mode.
        """
        mapper = self._require_mapper()
        req = {"TableName": self.schema.table_name, "Key": mapper.to_key(key)}
        try:
            resp = self._client.get_item(**req)
        except ClientError as err:
            raise map_client_error(err) from err

        item = resp.get("Item")
        if not item:
            raise NotFoundError(f"key not found: {key!r}")

        record = mapper.to_record(item)
        if value_encoding == "json":
            out = record.serialized_value()
        else:
            if "value" not in record.value:
                raise ValidationError(
                    f"record {key!r} has no value attribute; read it with value_encoding='json'"
                )
            inner = record.value["value"]
            out = inner if isinstance(inner, str) else dumps_value(inner)

        if as_buffer:
            return out.encode("utf-8")
        return out

    def put(self, key: Any, value: Any) -> None:
        mapper = self._require_mapper()
        req = {"TableName": self.schema.table_name, "Item": mapper.to_item(key, value)}
        try:
            self._client.put_item(**req)
        except ClientError as err:
            raise map_client_error(err) from err

    def delete(self, key: Any) -> None:
        mapper = self._require_mapper()
        req = {"TableName": self.schema.table_name, "Key": mapper.to_key(key)}
        try:
            self._client.delete_item(**req)
        except ClientError as err:
            raise map_client_error(err) from err

    del_ = delete

    def iterator(
        self, options: RangeOptions | Mapping[str, Any] | None = None, **kwargs: Any
    ) -> RangeIterator:
        mapper = self._require_mapper()
        if options is not None and kwargs:
            raise ValidationError("pass iterator options either as a mapping or as keywords")
        if not isinstance(options, RangeOptions):
            options = RangeOptions.from_mapping(options if options is not None else kwargs)
        return RangeIterator(self._client, self.schema, options, mapper=mapper)

    def batch(self, operations: Iterable[WriteOperation | Mapping[str, Any]]) -> int:
        writer = BatchWriter(
            self._client,
            self.schema,
            mapper=self._require_mapper(),
            batch_size=self._batch_size,
            max_retries=self._max_batch_retries,
            sleep=self._sleep,
        )
        return writer.write(operations)

    def _require_mapper(self) -> ItemMapper:
        if self._mapper is None:
            raise NotOpenError(f"store is not open: {self.location}")
        return self._mapper
