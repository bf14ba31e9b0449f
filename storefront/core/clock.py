"""
Clock & Scheduler Abstraction

Timer-driven components (the order tracker) never touch ``asyncio`` timers
directly. They receive a Scheduler, which gives them the current time and a
way to run a callback later.

Implementations:
    - AsyncioScheduler: real timers on the running event loop
    - ManualScheduler: virtual time, advanced explicitly (tests, simulations)

Usage:
    scheduler = ManualScheduler()
    handle = scheduler.call_later(7.0, tick)
    scheduler.advance(7.0)   # tick() runs here
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    """A pending callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class Scheduler(ABC):
    """
    Abstract time source and one-shot timer factory.

    Example:
        >>> handle = scheduler.call_later(1.5, callback)
        >>> handle.cancel()  # callback never runs
    """

    @abstractmethod
    def now(self) -> datetime:
        """Return the current (timezone-aware, UTC) time."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Schedule ``callback`` to run once after ``delay`` seconds.

        Args:
            delay: Seconds to wait (must not be negative)
            callback: Zero-argument callable

        Returns:
            TimerHandle: Handle used to cancel the pending callback
        """
        pass


# =============================================================================
# ASYNCIO
# =============================================================================

class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if delay < 0:
            raise ValueError("delay must not be negative")
        return _AsyncioTimerHandle(self._get_loop().call_later(delay, callback))


# =============================================================================
# VIRTUAL TIME
# =============================================================================

class _ManualTimerHandle(TimerHandle):
    def __init__(self, due: float):
        self.due = due
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """
    Scheduler with virtual time.

    Nothing happens until ``advance()`` is called. Callbacks fire in order of
    their due time (ties in scheduling order), and callbacks scheduled while
    advancing fire in the same call if they fall due before its end.

    Attributes:
        elapsed: Virtual seconds elapsed since creation
    """

    def __init__(self, start: Optional[datetime] = None):
        self._start = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.elapsed = 0.0
        self._queue: list[tuple[float, int, _ManualTimerHandle, Callable[[], None]]] = []
        self._sequence = itertools.count()

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if delay < 0:
            raise ValueError("delay must not be negative")
        handle = _ManualTimerHandle(self.elapsed + delay)
        heapq.heappush(self._queue, (handle.due, next(self._sequence), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to fire."""
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move virtual time forward, firing every callback that falls due.

        Args:
            seconds: Virtual seconds to advance

        Returns:
            int: Number of callbacks fired
        """
        if seconds < 0:
            raise ValueError("Cannot move time backwards")

        target = self.elapsed + seconds
        fired = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.elapsed = due
            callback()
            fired += 1

        self.elapsed = target
        logger.debug(f"Virtual clock advanced to {self.elapsed:.2f}s ({fired} callbacks)")
        return fired
