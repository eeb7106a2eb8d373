# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Clocks — wall time plus a one-shot, cancelable wait primitive.

Task groups never sleep themselves; they ask a Clock to call them back
after a delay and keep the returned handle so the wait can be cancelled.

  - LoopClock    asyncio event loop (loop.call_later), wall-clock now
  - ManualClock  deterministic time that only moves when advanced
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol

from tempo_trigger.core.timeutil import now_ms

logger = logging.getLogger("tempo.clock")


class WaitHandle(Protocol):
    """Anything with cancel(); asyncio.TimerHandle qualifies."""

    def cancel(self) -> None: ...


class Clock(ABC):
    """Source of the current instant and of delayed callbacks."""

    @abstractmethod
    def now_ms(self) -> int:
        """Current instant in epoch milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> WaitHandle:
        """Invoke callback once after delay_ms; cancel() before it fires suppresses it."""


class LoopClock(Clock):
    """
    Clock backed by an asyncio event loop.

    Without an explicit loop, call_later() must run inside a running loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def now_ms(self) -> int:
        return now_ms()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay_ms, 0) / 1000, callback)


class ManualWaitHandle:
    """Wait handle issued by ManualClock."""

    __slots__ = ("when", "_callback", "cancelled", "fired")

    def __init__(self, when: int, callback: Callable[[], None]) -> None:
        self.when = when
        self._callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def _run(self) -> None:
        self.fired = True
        self._callback()


class ManualClock(Clock):
    """
    Deterministic clock for tests and simulations.

    Time only moves through advance()/advance_to(). Due waits run in
    (due time, creation order); waits armed while advancing run in the same
    pass when they fall inside the window.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms
        self._queue: list[tuple[int, int, ManualWaitHandle]] = []
        self._seq = itertools.count()
        self.requested_delays: list[int] = []

    def now_ms(self) -> int:
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ManualWaitHandle:
        delay = max(int(delay_ms), 0)
        handle = ManualWaitHandle(self._now + delay, callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        self.requested_delays.append(delay)
        return handle

    @property
    def pending(self) -> int:
        """Number of armed, not yet cancelled waits."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, ms: int) -> None:
        if ms < 0:
            raise ValueError("cannot move a clock backwards")
        self.advance_to(self._now + ms)

    def advance_to(self, instant: int) -> None:
        if instant < self._now:
            raise ValueError("cannot move a clock backwards")
        while self._queue and self._queue[0][0] <= instant:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, when)
            handle._run()
        self._now = instant
        logger.debug("ManualClock advanced to %d", instant)
