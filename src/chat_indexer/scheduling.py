"""Timer primitives driving debounced and periodic work."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Cancellable pending callback."""

    def cancel(self) -> None:
        """Prevent the callback from running."""


class Scheduler(Protocol):
    """Subset of the asyncio event loop API used for timers.

    ``asyncio.AbstractEventLoop`` satisfies this protocol directly.
    """

    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle:
        """Run callback after delay seconds."""

    def time(self) -> float:
        """Return the scheduler's monotonic clock in seconds."""


class Debouncer:
    """Single-slot deferred action: every trigger resets the deadline."""

    def __init__(self, scheduler: Scheduler, delay_ms: int, callback: Callable[[], None]) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._scheduler = scheduler
        self._delay = delay_ms / 1000.0
        self._callback = callback
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """Return True while a deadline is armed."""
        return self._handle is not None

    def trigger(self) -> None:
        """Arm the deadline, replacing any pending one."""
        self.cancel()
        self._handle = self._scheduler.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        """Disarm the pending deadline, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class RepeatingTimer:
    """Fixed-interval timer that re-arms itself after every tick."""

    def __init__(
        self, scheduler: Scheduler, interval_ms: int, callback: Callable[[], None]
    ) -> None:
        if interval_ms < 1:
            raise ValueError("interval_ms must be >= 1")
        self._scheduler = scheduler
        self._interval = interval_ms / 1000.0
        self._callback = callback
        self._handle: TimerHandle | None = None
        self._running = False

    @property
    def running(self) -> bool:
        """Return True between start() and stop()."""
        return self._running

    def start(self) -> None:
        """Start ticking; a no-op when already running."""
        if self._running:
            return
        self._running = True
        self._arm()

    def stop(self) -> None:
        """Stop ticking and cancel the next tick."""
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _arm(self) -> None:
        self._handle = self._scheduler.call_later(self._interval, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self._running:
            return
        try:
            self._callback()
        finally:
            if self._running:
                self._arm()
