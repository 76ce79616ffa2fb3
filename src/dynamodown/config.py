from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

from .errors import ValidationError


@dataclass(frozen=True)
class StoreConfig:
    table_name: str
    hash_value: str

    def __post_init__(self) -> None:
        if not self.table_name:
            raise ValidationError("table_name is required")
        if not self.hash_value:
            raise ValidationError("hash_value is required")

    @classmethod
    def from_location(cls, location: str) -> StoreConfig:
        table_name, sep, hash_value = str(location or "").strip().partition("/")
        if not sep:
            raise ValidationError(f"location must look like 'table/hash': {location!r}")
        return cls(table_name=table_name, hash_value=hash_value)

    @property
    def location(self) -> str:
        return f"{self.table_name}/{self.hash_value}"


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be a number: {raw!r}") from err


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise ValidationError(f"{name} must be an integer: {raw!r}") from err


@dataclass(frozen=True)
class ClientSettings:
    region: str | None = None
    endpoint_url: str | None = None
    connect_timeout: float = 1.0
    read_timeout: float = 3.0
    max_attempts: int = 3

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] = os.environ) -> ClientSettings:
        region = (environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or "").strip()
        endpoint_url = (environ.get("DYNAMODB_ENDPOINT") or "").strip()
        return cls(
            region=region or None,
            endpoint_url=endpoint_url or None,
            connect_timeout=_env_float(environ, "DYNAMODOWN_CONNECT_TIMEOUT", 1.0),
            read_timeout=_env_float(environ, "DYNAMODOWN_READ_TIMEOUT", 3.0),
            max_attempts=_env_int(environ, "DYNAMODOWN_MAX_ATTEMPTS", 3),
        )


def create_boto3_config(
    *,
    connect_timeout: float = 1.0,
    read_timeout: float = 3.0,
    max_attempts: int = 3,
) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "adaptive"},
    )


def create_dynamodb_client(settings: ClientSettings | None = None, *, session: Any | None = None) -> Any:
    settings = settings or ClientSettings.from_environ()
    sess = session or boto3.session.Session(region_name=settings.region)

    kwargs: dict[str, Any] = {
        "region_name": settings.region,
        "config": create_boto3_config(
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
            max_attempts=settings.max_attempts,
        ),
    }
    if settings.endpoint_url:
        kwargs["endpoint_url"] = settings.endpoint_url

    return cast(Any, sess).client("dynamodb", **kwargs)
