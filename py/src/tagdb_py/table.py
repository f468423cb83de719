from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .dispatch import CodecRegistry, default_registry
from .errors import BatchRetryExceededError, NotFoundError, ValidationError
from .marshal import AttributeValue, marshal, marshal_keys
from .runtime import ClientConfig, resolve_client
from .unmarshal import unmarshal, unmarshal_all

logger = logging.getLogger(__name__)

BATCH_WRITE_LIMIT = 25


def _backoff_seconds(attempt: int) -> float:
    return min(1.0, 0.05 * 2.0 ** (attempt - 1))


def _chunked[T](items: Sequence[T], size: int) -> Sequence[Sequence[T]]:
    if size <= 0:
        raise ValueError("size must be > 0")
    return [items[i : i + size] for i in range(0, len(items), size)]


class Table:
    """Item operations on one table, with records marshaled through their field tags."""

    def __init__(
        self,
        table_name: str,
        *,
        client: Any | None = None,
        config: ClientConfig | None = None,
        registry: CodecRegistry | None = None,
    ) -> None:
        if not table_name:
            raise ValueError("table_name is required")

        self._table_name = table_name
        self._client: Any = resolve_client(client, config)
        self._registry = registry or default_registry

    @property
    def table_name(self) -> str:
        return self._table_name

    def put(self, record: Any) -> None:
        item = marshal(record, registry=self._registry)
        try:
            self._client.put_item(TableName=self._table_name, Item=item)
        except ClientError as err:
            raise map_client_error(err) from err

    def get[R](self, record: R, *, consistent_read: bool = False) -> R:
        key = self._key(record)
        try:
            resp = self._client.get_item(TableName=self._table_name, Key=key, ConsistentRead=consistent_read)
        except ClientError as err:
            raise map_client_error(err) from err

        item = resp.get("Item")
        if not item:
            raise NotFoundError("item not found")
        return unmarshal(item, record, registry=self._registry)

    def delete(self, record: Any) -> None:
        key = self._key(record)
        try:
            self._client.delete_item(TableName=self._table_name, Key=key)
        except ClientError as err:
            raise map_client_error(err) from err

    def batch_put(
        self,
        records: Sequence[Any],
        *,
        max_retries: int = 5,
        sleep: Callable[[float], None] | None = time.sleep,
    ) -> None:
        requests = [{"PutRequest": {"Item": marshal(r, registry=self._registry)}} for r in records]
        self._batch_write("batch_put", requests, max_retries=max_retries, sleep=sleep)

    def batch_delete(
        self,
        records: Sequence[Any],
        *,
        max_retries: int = 5,
        sleep: Callable[[float], None] | None = time.sleep,
    ) -> None:
        requests = [{"DeleteRequest": {"Key": self._key(r)}} for r in records]
        self._batch_write("batch_delete", requests, max_retries=max_retries, sleep=sleep)

    def all[R](self, prototype: R, *, consistent_read: bool = False) -> list[R]:
        req: dict[str, Any] = {"TableName": self._table_name, "ConsistentRead": consistent_read}
        return unmarshal_all(self._scan(req), prototype, registry=self._registry)

    def pluck[R](self, prototype: R, *attributes: str, consistent_read: bool = False) -> list[R]:
        if not attributes:
            raise ValidationError("pluck requires at least one attribute name")

        names = {f"#p{i}": name for i, name in enumerate(attributes)}
        req: dict[str, Any] = {
            "TableName": self._table_name,
            "ConsistentRead": consistent_read,
            "ProjectionExpression": ", ".join(names),
            "ExpressionAttributeNames": names,
        }
        return unmarshal_all(self._scan(req), prototype, registry=self._registry)

    def _key(self, record: Any) -> AttributeValue:
        key = marshal_keys(record, registry=self._registry)
        if not key:
            raise ValidationError("record has no non-empty hash/range key fields")
        return key

    def _scan(self, base_req: dict[str, Any]) -> list[AttributeValue]:
        items: list[AttributeValue] = []
        start: AttributeValue | None = None
        while True:
            req = dict(base_req)
            if start is not None:
                req["ExclusiveStartKey"] = start
            try:
                resp = self._client.scan(**req)
            except ClientError as err:
                raise map_client_error(err) from err

            items.extend(resp.get("Items", []))
            start = resp.get("LastEvaluatedKey")
            if not start:
                return items

    def _batch_write(
        self,
        operation: str,
        requests: list[dict[str, Any]],
        *,
        max_retries: int,
        sleep: Callable[[float], None] | None,
    ) -> None:
        if max_retries < 0:
            raise ValidationError("max_retries must be >= 0")

        for chunk in _chunked(requests, BATCH_WRITE_LIMIT):
            pending = list(chunk)
            attempts = 0

            while pending:
                try:
                    resp = self._client.batch_write_item(RequestItems={self._table_name: pending})
                except ClientError as err:
                    raise map_client_error(err) from err

                pending = resp.get("UnprocessedItems", {}).get(self._table_name, []) or []
                if pending:
                    if attempts >= max_retries:
                        raise BatchRetryExceededError(operation=operation, unprocessed_count=len(pending))
                    attempts += 1
                    logger.debug(
                        "%s: retrying %d unprocessed items (attempt %d)", operation, len(pending), attempts
                    )
                    if sleep is not None:
                        sleep(_backoff_seconds(attempts))
