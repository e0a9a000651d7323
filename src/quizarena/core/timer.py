"""QuestionTimer — drift-corrected per-question countdown.

Remaining time is always recomputed from the start timestamp
(``duration - (now - started)``), never by decrementing a counter, so late
or jittery ticks cannot accumulate drift. Every run carries a generation
number; a callback from a stopped or superseded run is dropped.
"""

from __future__ import annotations

from typing import Any, Callable

from quizarena.core.scheduler import Cancellable, Scheduler

DEFAULT_TICK_MS = 100


class QuestionTimer:
    """Countdown that ticks at a fixed cadence and expires exactly once.

    ``start()`` on a running timer stops the previous run first, so two runs
    can never overlap. ``stop()`` is idempotent and safe after expiry.
    """

    def __init__(self, scheduler: Scheduler, tick_ms: int = DEFAULT_TICK_MS) -> None:
        if tick_ms <= 0:
            raise ValueError(f"tick_ms must be > 0, got {tick_ms}")
        self._scheduler = scheduler
        self._tick_ms = tick_ms
        self._generation = 0
        self._handle: Cancellable | None = None
        self._running = False
        self._started_ms = 0
        self._frozen_ms = 0
        self._duration_ms = 0
        self._on_tick: Callable[[int], Any] | None = None
        self._on_expire: Callable[[], Any] | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    def start(
        self,
        duration_ms: int,
        on_tick: Callable[[int], Any] | None = None,
        on_expire: Callable[[], Any] | None = None,
    ) -> None:
        """Begin a countdown of ``duration_ms``.

        ``on_tick(remaining_ms)`` fires every tick while time remains;
        ``on_expire()`` fires once when remaining time reaches zero.
        """
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be > 0, got {duration_ms}")
        self.stop()
        self._generation += 1
        self._running = True
        self._started_ms = self._scheduler.now_ms()
        self._duration_ms = duration_ms
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._schedule(self._generation)

    def stop(self) -> None:
        """Cancel any pending callback. No-op when already stopped.

        The remaining time is frozen at the moment of the stop.
        """
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._running:
            self._frozen_ms = self.remaining_ms()
            self._running = False
            self._generation += 1

    def remaining_ms(self) -> int:
        """Time left in the current run, clamped to [0, duration]."""
        if not self._running:
            return self._frozen_ms
        elapsed = self._scheduler.now_ms() - self._started_ms
        return max(0, min(self._duration_ms, self._duration_ms - elapsed))

    def elapsed_ms(self) -> int:
        return self._duration_ms - self.remaining_ms()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _schedule(self, generation: int) -> None:
        delay = min(self._tick_ms, self.remaining_ms())
        self._handle = self._scheduler.call_later(delay, self._fire, generation)

    def _fire(self, generation: int) -> None:
        if generation != self._generation or not self._running:
            return
        self._handle = None
        remaining = self.remaining_ms()
        if remaining > 0:
            if self._on_tick is not None:
                self._on_tick(remaining)
            # The tick callback may have stopped or restarted the timer.
            if generation == self._generation and self._running:
                self._schedule(generation)
            return

        self._frozen_ms = 0
        self._running = False
        self._generation += 1
        if self._on_tick is not None:
            self._on_tick(0)
        if self._on_expire is not None:
            self._on_expire()
