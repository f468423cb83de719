from __future__ import annotations

from dataclasses import dataclass, field

from .mocks import ANY, FakeDynamoDBClient, client_error, match_request


def no_sleep(_: float) -> None:
    return None


@dataclass
class SleepRecorder:
    """Drop-in for ``time.sleep`` that records the requested delays."""

    delays: list[float] = field(default_factory=list)

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "SleepRecorder",
    "client_error",
    "match_request",
    "no_sleep",
]
