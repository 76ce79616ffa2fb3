from __future__ import annotations

import logging
from typing import Any

from .batch import MAX_BATCH_SIZE, WriteOperation
from .codec import AttributeCodec
from .config import ClientSettings, StoreConfig, create_dynamodb_client
from .store import DynamoStore

logger = logging.getLogger(__name__)


def _resolve_config(location: str | StoreConfig) -> StoreConfig:
    if isinstance(location, StoreConfig):
        return location
    return StoreConfig.from_location(location)


class StoreFactory:
    """Builds :class:`DynamoStore` instances that share one DynamoDB client.

    Locations are ``"table/hash"`` strings (or :class:`StoreConfig` values):
    the table to use and the hash key value that identifies the partition.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        settings: ClientSettings | None = None,
        codec: AttributeCodec | None = None,
        **store_options: Any,
    ) -> None:
        self._client: Any = client or create_dynamodb_client(settings)
        self._codec = codec
        self._store_options = store_options

    @property
    def client(self) -> Any:
        return self._client

    def __call__(self, location: str | StoreConfig) -> DynamoStore:
        return DynamoStore(
            self._client,
            _resolve_config(location),
            codec=self._codec,
            **self._store_options,
        )

    def open(self, location: str | StoreConfig) -> DynamoStore:
        return self(location).open()

    def destroy(self, location: str | StoreConfig) -> int:
        """Delete every record stored under ``location``; returns the count."""
        store = self.open(location)
        deleted = 0
        try:
            ops: list[WriteOperation] = []
            with store.iterator() as it:
                for key, _ in it:
                    ops.append(WriteOperation.delete(key))
                    if len(ops) >= MAX_BATCH_SIZE:
                        store.batch(ops)
                        deleted += len(ops)
                        ops = []
            if ops:
                store.batch(ops)
                deleted += len(ops)
        finally:
            store.close()

        logger.debug("destroyed %s: %d records deleted", store.location, deleted)
        return deleted
