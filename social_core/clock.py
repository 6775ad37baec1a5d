"""Clock and scheduler.

The orchestrator never calls time functions directly. It asks a Clock for
"now" (seconds, monotonic) and keeps delayed work in a Scheduler that is
drained on each tick. Production uses WallClock; tests use VirtualClock and
move time forward explicitly.
"""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Protocol


class Clock(Protocol):
    def now(self) -> float: ...


class WallClock:
    def now(self) -> float:
        return time.monotonic()


class VirtualClock:
    """Manually advanced clock. Starts at `start` seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        if seconds < 0:
            raise ValueError("VirtualClock cannot move backwards")
        self._now += seconds
        return self._now


@dataclass(order=True)
class ScheduledTask:
    due: float
    seq: int
    day: int = field(compare=False)
    kind: str = field(compare=False)
    payload: dict[str, Any] = field(compare=False, default_factory=dict)


class Scheduler:
    """Min-heap of delayed tasks keyed on due time.

    Tasks remember the game day they were scheduled on; `due()` drops tasks
    whose day has passed instead of returning them.
    """

    def __init__(self) -> None:
        self._heap: list[ScheduledTask] = []
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def schedule(
        self, *, at: float, day: int, kind: str, payload: dict[str, Any] | None = None
    ) -> ScheduledTask:
        task = ScheduledTask(
            due=at, seq=next(self._seq), day=day, kind=kind, payload=payload or {}
        )
        heapq.heappush(self._heap, task)
        return task

    def due(self, now: float, day: int) -> list[ScheduledTask]:
        """Pop every task due at or before `now`, in due order."""
        ready: list[ScheduledTask] = []
        while self._heap and self._heap[0].due <= now:
            task = heapq.heappop(self._heap)
            if task.day == day:
                ready.append(task)
        return ready

    def pending(self) -> list[ScheduledTask]:
        return sorted(self._heap)

    def clear(self) -> None:
        self._heap.clear()
