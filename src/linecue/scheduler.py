# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Deferred-callback schedulers used for the auto-advance debounce.

The aligner never owns a timer directly; it asks an injected Scheduler to
call it back later and keeps the returned handle so the callback can be
cancelled. AsyncioScheduler is used by the live application, while
VirtualScheduler runs callbacks against a virtual clock that tests and the
replay tool move forward explicitly.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field


class TimerHandle(ABC):
    """A pending callback that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call more than once."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""


class Scheduler(ABC):
    """Base interface for anything that can run a callback after a delay."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Schedule a callback.

        Args:
            delay: Seconds to wait before running the callback
            callback: Zero-argument function to run

        Returns:
            Handle that can cancel the callback before it runs
        """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""


class _AsyncioTimerHandle(TimerHandle):
    """Wraps an asyncio.TimerHandle."""

    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle: asyncio.TimerHandle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    All callbacks run on the loop thread, so they are serialized with
    transcript updates and navigation commands handled on the same loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop: asyncio.AbstractEventLoop | None = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The loop in use (the running loop unless one was given)."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioTimerHandle(self.loop.call_later(delay, callback))

    def now(self) -> float:
        return self.loop.time()


@dataclass(order=True)
class _VirtualTimer:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    handle: 'VirtualTimerHandle' = field(compare=False)


class VirtualTimerHandle(TimerHandle):
    """Handle for a callback scheduled on a VirtualScheduler."""

    def __init__(self) -> None:
        self._cancelled: bool = False
        self.fired: bool = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler driven by a virtual clock.

    Nothing runs until advance() or run_all() is called. Callbacks due at the
    same instant run in the order they were scheduled.

    Usage:
        scheduler = VirtualScheduler()
        aligner = SegmentAligner(script, scheduler=scheduler)
        aligner.consume("hello world")
        scheduler.advance(0.05)  # fires the debounce timer
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now: float = start
        self._queue: list[_VirtualTimer] = []
        self._counter: Iterator[int] = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle: VirtualTimerHandle = VirtualTimerHandle()
        timer: _VirtualTimer = _VirtualTimer(
            due=self._now + max(0.0, delay),
            seq=next(self._counter),
            callback=callback,
            handle=handle
        )
        heapq.heappush(self._queue, timer)
        return handle

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not run or been cancelled."""
        return sum(1 for t in self._queue if not t.handle.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that becomes due.

        Callbacks scheduled by other callbacks also run if they fall due
        within the window.

        Returns:
            Number of callbacks that ran
        """
        if seconds < 0:
            raise ValueError(f"Cannot move the clock backwards ({seconds}s)")

        target: float = self._now + seconds
        ran: int = 0
        while self._queue and self._queue[0].due <= target:
            timer: _VirtualTimer = heapq.heappop(self._queue)
            if timer.handle.cancelled:
                continue
            self._now = timer.due
            timer.handle.fired = True
            timer.callback()
            ran += 1
        self._now = target
        return ran

    def run_all(self) -> int:
        """Run every pending callback, moving the clock as far as needed."""
        ran: int = 0
        while self._queue:
            timer: _VirtualTimer = self._queue[0]
            ran += self.advance(max(0.0, timer.due - self._now))
        return ran
