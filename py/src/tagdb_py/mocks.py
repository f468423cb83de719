from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from typing import Any

from botocore.exceptions import ClientError


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()

type RequestCheck = Mapping[str, Any] | Callable[[Mapping[str, Any]], None]

OPERATIONS = frozenset(
    {
        "batch_write_item",
        "create_table",
        "delete_item",
        "delete_table",
        "describe_table",
        "get_item",
        "list_tables",
        "put_item",
        "scan",
    }
)


def client_error(code: str, message: str = "", *, operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def match_request(expected: Any, actual: Any, path: str = "request") -> None:
    """Assert that ``actual`` contains ``expected``.

    Maps match on the expected keys only; lists must match item for item;
    ``ANY`` matches anything.
    """
    if expected is ANY:
        return
    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            raise AssertionError(f"{path}: expected map, got {type(actual).__name__}")
        missing = [k for k in expected if k not in actual]
        if missing:
            raise AssertionError(f"{path}: missing key {missing[0]!r}")
        for key, want in expected.items():
            match_request(want, actual[key], f"{path}.{key}")
    elif isinstance(expected, list):
        if not isinstance(actual, list) or len(actual) != len(expected):
            got = len(actual) if isinstance(actual, list) else type(actual).__name__
            raise AssertionError(f"{path}: expected {len(expected)} items, got {got}")
        for i, want in enumerate(expected):
            match_request(want, actual[i], f"{path}[{i}]")
    elif expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


@dataclass(frozen=True)
class ScriptedCall:
    operation: str
    request: RequestCheck | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class RecordedCall:
    operation: str
    request: dict[str, Any]


class FakeDynamoDBClient:
    """Scripted stand-in for a low-level boto3 DynamoDB client.

    Each operation call consumes the next scripted call, which must name the
    same operation. Requests are recorded whether or not they match.
    """

    def __init__(self) -> None:
        self._script: deque[ScriptedCall] = deque()
        self.calls: list[RecordedCall] = []

    def expect(
        self,
        operation: str,
        request: RequestCheck | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"unknown operation: {operation}")
        self._script.append(ScriptedCall(operation, request, response, error))

    def assert_no_pending(self) -> None:
        if self._script:
            names = ", ".join(call.operation for call in self._script)
            raise AssertionError(f"{len(self._script)} scripted calls still pending: {names}")

    def requests(self, operation: str) -> list[dict[str, Any]]:
        return [call.request for call in self.calls if call.operation == operation]

    def __getattr__(self, name: str) -> Callable[..., Mapping[str, Any]]:
        if name in OPERATIONS:
            return partial(self._invoke, name)
        raise AttributeError(name)

    def _invoke(self, operation: str, **request: Any) -> Mapping[str, Any]:
        self.calls.append(RecordedCall(operation, dict(request)))
        if not self._script:
            raise AssertionError(f"unexpected call: {operation}")

        scripted = self._script.popleft()
        if scripted.operation != operation:
            raise AssertionError(f"expected {scripted.operation}, got {operation}")
        if callable(scripted.request):
            scripted.request(request)
        elif scripted.request is not None:
            match_request(scripted.request, request, operation)

        if scripted.error is not None:
            raise scripted.error
        return dict(scripted.response or {})
