from __future__ import annotations

import json
import logging
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .codec import AttributeCodec, AttributeValue, NativeValue, decode, encode
from .errors import (
    BatchRetryExceededError,
    DynamodownError,
    NotFoundError,
    NotOpenError,
    ProviderError,
    UnknownTagError,
    UnsupportedTypeError,
    ValidationError,
)
from .mapper import ItemMapper, Record
from .query import Bound, QueryPlan, RangeOptions, plan_query
from .schema import TableSchema, load_schema

if TYPE_CHECKING:
    from .batch import BatchWriter, WriteOperation
    from .config import ClientSettings, StoreConfig, create_boto3_config, create_dynamodb_client
    from .factory import StoreFactory
    from .iterator import IteratorState, RangeIterator
    from .store import DynamoStore

logging.getLogger(__name__).addHandler(logging.NullHandler())


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {"BatchWriter", "WriteOperation"}:
        from . import batch

        return getattr(batch, name)
    if name in {"ClientSettings", "StoreConfig", "create_boto3_config", "create_dynamodb_client"}:
        from . import config

        return getattr(config, name)
    if name == "StoreFactory":
        from .factory import StoreFactory

        return StoreFactory
    if name in {"IteratorState", "RangeIterator"}:
        from . import iterator

        return getattr(iterator, name)
    if name == "DynamoStore":
        from .store import DynamoStore

        return DynamoStore
    raise AttributeError(name)


__all__ = [
    "AttributeCodec",
    "AttributeValue",
    "BatchRetryExceededError",
    "BatchWriter",
    "Bound",
    "ClientSettings",
    "DynamoStore",
    "DynamodownError",
    "IteratorState",
    "ItemMapper",
    "NativeValue",
    "NotFoundError",
    "NotOpenError",
    "ProviderError",
    "QueryPlan",
    "RangeIterator",
    "RangeOptions",
    "Record",
    "StoreConfig",
    "StoreFactory",
    "TableSchema",
    "UnknownTagError",
    "UnsupportedTypeError",
    "ValidationError",
    "WriteOperation",
    "__repo_version__",
    "__version__",
    "create_boto3_config",
    "create_dynamodb_client",
    "decode",
    "encode",
    "load_schema",
    "plan_query",
]
