from __future__ import annotations

from collections.abc import Iterable

import pytest


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    async def asleep(self, seconds: float) -> None:
        self.sleep(seconds)


class ScriptedQuery:
    """Query callable that replays scripted payloads or raises scripted errors.

    The last entry repeats once the script runs out.
    """

    def __init__(self, clock: FakeClock, responses: Iterable[object]) -> None:
        self._clock = clock
        self._responses = list(responses)
        self.calls: list[tuple[str, float]] = []

    def __call__(self, name: str) -> object:
        self.calls.append((name, self._clock.now))
        item = self._responses[min(len(self.calls), len(self._responses)) - 1]
        if isinstance(item, BaseException):
            raise item
        return item

    @property
    def times(self) -> list[float]:
        return [t for _, t in self.calls]


def pending(name: str = "operations/op-1") -> dict[str, object]:
    return {"name": name}


def done(name: str = "operations/op-1", **error: object) -> dict[str, object]:
    payload: dict[str, object] = {"name": name, "done": True}
    if error:
        payload["error"] = error
    return payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
