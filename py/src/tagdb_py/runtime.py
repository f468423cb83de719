from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class ClientConfig:
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    connect_timeout: float = 1.0
    read_timeout: float = 3.0
    max_attempts: int = 3

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> ClientConfig:
        region = environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION
        endpoint_url = (environ.get("DYNAMODB_ENDPOINT") or "").strip() or None
        return cls(region=region, endpoint_url=endpoint_url)


def create_boto3_config(config: ClientConfig) -> Config:
    return Config(
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        retries={"max_attempts": config.max_attempts, "mode": "adaptive"},
    )


def create_dynamodb_client(config: ClientConfig | None = None, *, session: Any | None = None) -> Any:
    config = config or ClientConfig.from_env()
    sess = session or boto3.session.Session(region_name=config.region)
    return cast(Any, sess).client(
        "dynamodb",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        config=create_boto3_config(config),
    )


def resolve_client(client: Any | None, config: ClientConfig | None) -> Any:
    if client is not None:
        return client
    return create_dynamodb_client(config)
