"""Schedulers — the single cooperative event queue every match runs on.

All timer ticks, expiries, review delays and scripted answers are callbacks
on one scheduler. Callbacks never overlap, so match state needs no locks.

Two implementations share one interface (``now_ms`` / ``call_later``):
- ManualScheduler: virtual clock, advanced explicitly. Deterministic, used
  by tests and offline contest simulation.
- AsyncioScheduler: thin wrapper over a running asyncio event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Any, Callable, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Interface shared by every scheduler."""

    def now_ms(self) -> int: ...

    def call_later(
        self, delay_ms: int, callback: Callable[..., Any], *args: Any
    ) -> Cancellable: ...


class TimerHandle:
    """Handle for a pending ManualScheduler callback."""

    __slots__ = ("due_ms", "_callback", "_args", "_cancelled")

    def __init__(self, due_ms: int, callback: Callable[..., Any], args: tuple) -> None:
        self.due_ms = due_ms
        self._callback = callback
        self._args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _run(self) -> None:
        self._callback(*self._args)


class ManualScheduler:
    """Virtual-clock event queue.

    Callbacks run in (due time, schedule order) order. Time only moves when
    ``advance`` or ``run_until_idle`` is called, and it moves to each
    callback's due time before that callback runs, so ``now_ms()`` inside a
    callback is exactly the time it was scheduled for.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms
        self._queue: list[tuple[int, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def now_ms(self) -> int:
        return self._now

    def call_later(
        self, delay_ms: int, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        handle = TimerHandle(self._now + delay_ms, callback, args)
        heapq.heappush(self._queue, (handle.due_ms, next(self._sequence), handle))
        return handle

    def pending(self) -> int:
        """Number of callbacks still waiting (cancelled ones excluded)."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, delta_ms: int) -> None:
        """Move the clock forward, running every callback that falls due."""
        if delta_ms < 0:
            raise ValueError(f"delta_ms must be >= 0, got {delta_ms}")
        target = self._now + delta_ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            handle._run()
        self._now = target

    def run_until_idle(self, limit_ms: int | None = None) -> None:
        """Run callbacks until the queue drains (or ``limit_ms`` elapses)."""
        deadline = None if limit_ms is None else self._now + limit_ms
        while self._queue:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            if deadline is not None and due > deadline:
                heapq.heappush(self._queue, (due, next(self._sequence), handle))
                self._now = deadline
                return
            self._now = due
            handle._run()


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop (live hosts)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        # Without an explicit loop this must be constructed inside a coroutine.
        self._loop = loop or asyncio.get_running_loop()

    def now_ms(self) -> int:
        return int(self._loop.time() * 1000)

    def call_later(
        self, delay_ms: int, callback: Callable[..., Any], *args: Any
    ) -> asyncio.TimerHandle:
        return self._loop.call_later(delay_ms / 1000, callback, *args)
