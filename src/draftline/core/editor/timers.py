"""
Timer scheduling for debounced autosave.

The coordinator never sleeps or spawns threads; it asks a :class:`Scheduler`
to call it back later. Two implementations:

- :class:`AsyncioScheduler` adapts an asyncio event loop, by default the one
  running when it is built.
- :class:`ManualScheduler` keeps its own virtual clock and fires callbacks only
  when :meth:`ManualScheduler.advance` moves time forward. Useful for tests
  and for hosts that drive their own event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Anything with a ``cancel()`` method."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Schedules a zero-argument callback after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    The loop is bound at construction: ``loop`` if given, otherwise the loop
    running in the calling thread. Building one with neither raises
    ``RuntimeError`` before any editor state is touched.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "AsyncioScheduler needs a running event loop; pass loop= "
                    "or use another Scheduler such as ManualScheduler"
                ) from exc
        self.loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)


class _ManualHandle:
    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler driven by :meth:`advance`."""

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: list[tuple[float, int, _ManualHandle, Callable[[], None]]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run every due callback; return how many ran."""
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = due
            if handle.cancelled:
                continue
            callback()
            fired += 1
        self.now = target
        return fired

    @property
    def pending(self) -> int:
        """Number of scheduled, not cancelled callbacks."""
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)


__all__ = ["AsyncioScheduler", "ManualScheduler", "Scheduler", "TimerHandle"]
