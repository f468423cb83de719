from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

from .aws_errors import error_code, map_client_error
from .codecs import NUMBER_KINDS, ScalarKind
from .dispatch import CodecRegistry, default_registry
from .errors import KeySchemaError, UnsupportedTypeError, ValidationError
from .model import RecordField, definition_for
from .runtime import ClientConfig, resolve_client

logger = logging.getLogger(__name__)

BILLING_MODES = frozenset({"PAY_PER_REQUEST", "PROVISIONED"})


@dataclass(frozen=True)
class WaitOptions:
    timeout_seconds: float = 300.0
    poll_interval_seconds: float = 0.25
    sleep: Callable[[float], None] = time.sleep


DEFAULT_WAIT = WaitOptions()


def attribute_definitions(record: Any, *, registry: CodecRegistry | None = None) -> list[dict[str, str]]:
    registry = registry or default_registry
    return [
        {"AttributeName": rf.attribute_name, "AttributeType": _guess_key_type(rf, registry)}
        for rf in _key_fields(record)
    ]


def key_schema(record: Any) -> list[dict[str, str]]:
    return [
        {"AttributeName": rf.attribute_name, "KeyType": "HASH" if rf.tag.hash_key else "RANGE"}
        for rf in _key_fields(record)
    ]


def build_create_table_request(
    record: Any,
    *,
    table_name: str,
    billing_mode: str = "PAY_PER_REQUEST",
    provisioned_throughput: Mapping[str, int] | None = None,
    registry: CodecRegistry | None = None,
) -> dict[str, Any]:
    """Build ``CreateTable`` parameters from the record's ``hash``/``range`` tags.

    The key schema lists the hash key first; attribute definitions keep field
    declaration order.
    """
    if not table_name:
        raise ValueError("table_name is required")
    if billing_mode not in BILLING_MODES:
        raise ValidationError(f"unsupported billing_mode: {billing_mode}")
    if billing_mode == "PROVISIONED" and provisioned_throughput is None:
        raise ValidationError("provisioned_throughput is required when billing_mode=PROVISIONED")

    keys = key_schema(record)
    hashes = [k for k in keys if k["KeyType"] == "HASH"]
    ranges = [k for k in keys if k["KeyType"] == "RANGE"]
    if len(hashes) != 1:
        raise KeySchemaError(f"record must define exactly one hash key (found {len(hashes)})")
    if len(ranges) > 1:
        raise KeySchemaError(f"record must define at most one range key (found {len(ranges)})")

    req: dict[str, Any] = {
        "TableName": table_name,
        "BillingMode": billing_mode,
        "KeySchema": hashes + ranges,
        "AttributeDefinitions": attribute_definitions(record, registry=registry),
    }
    if billing_mode == "PROVISIONED" and provisioned_throughput is not None:
        req["ProvisionedThroughput"] = dict(provisioned_throughput)
    return req


def create_table(
    record: Any,
    *,
    table_name: str,
    client: Any | None = None,
    config: ClientConfig | None = None,
    billing_mode: str = "PAY_PER_REQUEST",
    provisioned_throughput: Mapping[str, int] | None = None,
    wait: WaitOptions | None = DEFAULT_WAIT,
    registry: CodecRegistry | None = None,
) -> None:
    """Create the table for ``record``; an existing table is left as is.

    Pass ``wait=None`` to return without polling for ``ACTIVE``.
    """
    client = resolve_client(client, config)
    req = build_create_table_request(
        record,
        table_name=table_name,
        billing_mode=billing_mode,
        provisioned_throughput=provisioned_throughput,
        registry=registry,
    )

    try:
        client.create_table(**req)
    except ClientError as err:
        if error_code(err) != "ResourceInUseException":
            raise map_client_error(err) from err
        logger.info("table %s already exists", table_name)

    if wait is not None:
        _wait_for(client, table_name, "ACTIVE", wait)


def ensure_table(
    record: Any,
    *,
    table_name: str,
    client: Any | None = None,
    config: ClientConfig | None = None,
    billing_mode: str = "PAY_PER_REQUEST",
    provisioned_throughput: Mapping[str, int] | None = None,
    wait: WaitOptions | None = DEFAULT_WAIT,
    registry: CodecRegistry | None = None,
) -> None:
    client = resolve_client(client, config)
    if _table_status(client, table_name) is None:
        create_table(
            record,
            table_name=table_name,
            client=client,
            billing_mode=billing_mode,
            provisioned_throughput=provisioned_throughput,
            wait=wait,
            registry=registry,
        )
    elif wait is not None:
        _wait_for(client, table_name, "ACTIVE", wait)


def delete_table(
    table_name: str,
    *,
    client: Any | None = None,
    config: ClientConfig | None = None,
    wait: WaitOptions | None = DEFAULT_WAIT,
    ignore_missing: bool = False,
) -> None:
    client = resolve_client(client, config)
    try:
        client.delete_table(TableName=table_name)
    except ClientError as err:
        if ignore_missing and error_code(err) == "ResourceNotFoundException":
            return
        raise map_client_error(err) from err

    if wait is not None:
        _wait_for(client, table_name, None, wait)


def describe_table(
    table_name: str, *, client: Any | None = None, config: ClientConfig | None = None
) -> dict[str, Any]:
    client = resolve_client(client, config)
    try:
        resp = client.describe_table(TableName=table_name)
    except ClientError as err:
        raise map_client_error(err) from err
    return dict(resp.get("Table", {}))


def list_tables(*, client: Any | None = None, config: ClientConfig | None = None) -> list[str]:
    client = resolve_client(client, config)
    names: list[str] = []
    req: dict[str, Any] = {}
    while True:
        try:
            resp = client.list_tables(**req)
        except ClientError as err:
            raise map_client_error(err) from err

        names.extend(resp.get("TableNames", []))
        last = resp.get("LastEvaluatedTableName")
        if not last:
            return names
        req = {"ExclusiveStartTableName": last}


def _key_fields(record: Any) -> tuple[RecordField, ...]:
    key_fields = definition_for(record).key_fields
    for rf in key_fields:
        if rf.tag.hash_key and rf.tag.range_key:
            raise KeySchemaError(f"field cannot be both hash and range key: {rf.python_name}")
    return key_fields


def _guess_key_type(rf: RecordField, registry: CodecRegistry) -> str:
    try:
        kind = registry.scalar_kind_for(rf.annotation)
    except UnsupportedTypeError as err:
        raise KeySchemaError(f"key field must be a scalar type: {rf.python_name} ({err})") from err

    if kind in NUMBER_KINDS:
        return "N"
    if kind is ScalarKind.BYTES:
        return "B"
    return "S"


def _table_status(client: Any, table_name: str) -> str | None:
    # None means the table does not exist.
    try:
        resp = client.describe_table(TableName=table_name)
    except ClientError as err:
        if error_code(err) == "ResourceNotFoundException":
            return None
        raise map_client_error(err) from err
    return str(resp.get("Table", {}).get("TableStatus", ""))


def _wait_for(client: Any, table_name: str, status: str | None, wait: WaitOptions) -> None:
    deadline = time.monotonic() + wait.timeout_seconds
    while time.monotonic() < deadline:
        current = _table_status(client, table_name)
        if current == status:
            return
        logger.debug("waiting for table %s: status=%r want=%r", table_name, current, status)
        wait.sleep(wait.poll_interval_seconds)

    raise ValidationError(f"timed out waiting for table {table_name} (want status {status!r})")
