"""
Deterministic periodic-callback scheduler.

Replaces engine-bound timers with an explicit driver: each task runs on a
fixed interval of simulated milliseconds, and ``run_until(now)`` fires all
due runs in timestamp order, one at a time. Ties fire in registration
order. The same scheduler serves a real-time host loop, a test harness,
and fast-forward simulation.

    scheduler = PeriodicScheduler(start=0)
    scheduler.register("tick", 1000, game.tick)
    scheduler.run_until(now=5000)   # five ticks, at 1000..5000
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Callable


@dataclass(order=True)
class _ScheduledRun:
    time: int
    # heapq tiebreaker: registration order
    _seq: int = field(compare=True, repr=False)
    name: str = field(compare=False, default="")


@dataclass
class PeriodicTask:
    name: str
    interval: int
    callback: Callable[[int], object]
    runs: int = 0


class PeriodicScheduler:
    """Fires registered callbacks at ``start + k * interval``."""

    def __init__(self, start: int = 0) -> None:
        self.now = start
        self._tasks: dict[str, PeriodicTask] = {}
        self._order: dict[str, int] = {}
        self._next_seq = 0
        self._queue: list[_ScheduledRun] = []

    def register(self, name: str, interval: int,
                 callback: Callable[[int], object],
                 first_run: int | None = None) -> PeriodicTask:
        """Add a task; its first run is ``first_run`` or one interval from now."""
        if interval <= 0:
            raise ValueError(f"Interval for task '{name}' must be positive")
        task = PeriodicTask(name=name, interval=interval, callback=callback)
        self._tasks[name] = task
        self._order[name] = self._next_seq
        self._next_seq += 1
        start = first_run if first_run is not None else self.now + interval
        heapq.heappush(self._queue, _ScheduledRun(start, self._order[name], name))
        return task

    def unregister(self, name: str) -> None:
        self._tasks.pop(name, None)

    @property
    def tasks(self) -> dict[str, PeriodicTask]:
        return dict(self._tasks)

    def _is_live(self, run: _ScheduledRun) -> bool:
        # A re-registered task leaves its old runs behind with a stale seq
        return run.name in self._tasks and self._order[run.name] == run._seq

    def peek_time(self) -> int | None:
        """Time of the next due run, or None if nothing is scheduled."""
        while self._queue and not self._is_live(self._queue[0]):
            heapq.heappop(self._queue)
        if self._queue:
            return self._queue[0].time
        return None

    def run_until(self, now: int) -> int:
        """Fire every run scheduled at or before ``now``. Returns runs fired."""
        fired = 0
        while True:
            next_time = self.peek_time()
            if next_time is None or next_time > now:
                break
            run = heapq.heappop(self._queue)
            task = self._tasks[run.name]
            self.now = run.time
            task.callback(run.time)
            task.runs += 1
            fired += 1
            if self._is_live(run):
                heapq.heappush(
                    self._queue,
                    _ScheduledRun(run.time + task.interval, run._seq, run.name),
                )
        self.now = max(self.now, now)
        return fired
