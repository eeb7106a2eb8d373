# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Task Group — every callback registered for one target instant.

A group owns at most one outstanding wait. Each tick recomputes the
remaining time and either fires or re-arms a single new wait whose length
comes from the strategy resolver, so the polling cadence narrows as the
target approaches.

States:
    SCHEDULED ──execute()──▶ FIRED
        └──────destroy()───▶ DESTROYED

Both terminal states hold no callbacks and no wait handle.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional

from tempo_trigger.core.errors import CallbackError
from tempo_trigger.kernel.clock import Clock, WaitHandle
from tempo_trigger.kernel.strategies import TickContext, TickStrategyResolver

logger = logging.getLogger("tempo.task_group")

TaskCallback = Callable[[], Any]

# Strong references to awaitables scheduled by async callbacks until they finish
_background: set = set()


class GroupState(str, Enum):
    SCHEDULED = "scheduled"
    FIRED = "fired"
    DESTROYED = "destroyed"


class TaskGroup:
    """
    One target instant, its callbacks and its self-re-arming wait.

    The group does not start ticking on construction: the owner adds the
    first callback and then calls start(), so a target that is already due
    fires with that callback present.
    """

    def __init__(
        self,
        target_time: int,
        resolver: TickStrategyResolver,
        clock: Clock,
        callbacks: Iterable[TaskCallback] = (),
        on_settle: Optional[Callable[[TaskGroup], None]] = None,
        on_error: Optional[Callable[[CallbackError], None]] = None,
    ) -> None:
        self._target_time = int(target_time)
        self._resolver = resolver
        self._clock = clock
        self._callbacks: List[TaskCallback] = list(callbacks)
        self._on_settle = on_settle
        self._on_error = on_error
        self._handle: Optional[WaitHandle] = None
        self._state = GroupState.SCHEDULED
        self._started = False
        self.ticks = 0

    @property
    def target_time(self) -> int:
        return self._target_time

    @property
    def state(self) -> GroupState:
        return self._state

    @property
    def fired(self) -> bool:
        return self._state is GroupState.FIRED

    @property
    def destroyed(self) -> bool:
        return self._state is GroupState.DESTROYED

    @property
    def has_pending_wait(self) -> bool:
        return self._handle is not None

    # ── Membership ──────────────────────────────────────────────

    def add_task(self, callback: TaskCallback) -> None:
        """Append a callback; ignored once the group has fired or been destroyed."""
        if self._state is not GroupState.SCHEDULED:
            logger.debug("add_task ignored on %s group %d", self._state.value, self._target_time)
            return
        self._callbacks.append(callback)

    def remove_task(self, callback: TaskCallback) -> bool:
        """
        Remove the first reference identical to callback. Returns True if one was removed.

        Once the group has started firing nothing can be removed.
        """
        if self._state is not GroupState.SCHEDULED:
            return False
        for index, existing in enumerate(self._callbacks):
            if existing is callback:
                del self._callbacks[index]
                return True
        return False

    def is_empty(self) -> bool:
        return not self._callbacks

    def task_count(self) -> int:
        return len(self._callbacks)

    def remaining_ms(self, now: Optional[int] = None) -> int:
        if now is None:
            now = self._clock.now_ms()
        return self._target_time - now

    # ── Scheduling loop ─────────────────────────────────────────

    def start(self) -> None:
        """Run the first tick. Later calls do nothing."""
        if self._started or self._state is not GroupState.SCHEDULED:
            return
        self._started = True
        self._tick()

    def _tick(self) -> None:
        self._handle = None
        if self._state is not GroupState.SCHEDULED:
            return
        self.ticks += 1

        now = self._clock.now_ms()
        diff = self._target_time - now
        if diff <= 0:
            self.execute()
            return

        ctx = TickContext(now=now, target_time=self._target_time)
        strategy = self._resolver.resolve(ctx)
        delay = strategy.next_delay(ctx)
        self._handle = self._clock.call_later(delay, self._tick)
        logger.debug(
            "Group %d armed %d ms (%s, %d ms remaining)",
            self._target_time, delay, strategy.value, diff,
            extra={"target_time": self._target_time, "strategy": strategy.value, "delay_ms": delay},
        )

    def _cancel_wait(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _settle(self, state: GroupState) -> None:
        self._state = state
        if self._on_settle is not None:
            self._on_settle(self)

    # ── Terminal transitions ────────────────────────────────────

    def execute(self) -> List[CallbackError]:
        """
        Invoke every callback once, then tear the group down.

        A callback's exception is wrapped in CallbackError, reported to the
        error channel and collected; remaining callbacks still run. An async
        callback's coroutine is scheduled on the running loop and its failure
        is reported to the error channel when it finishes. Repeated calls, or
        calls after destroy(), invoke nothing and return [].
        """
        if self._state is not GroupState.SCHEDULED:
            return []

        callbacks = list(self._callbacks)
        errors: List[CallbackError] = []
        try:
            self._settle(GroupState.FIRED)
            logger.info(
                "Group %d firing %d callback(s)", self._target_time, len(callbacks),
                extra={"target_time": self._target_time, "group_size": len(callbacks)},
            )
            for callback in callbacks:
                try:
                    result = callback()
                    if inspect.isawaitable(result):
                        self._schedule_awaitable(callback, result)
                except Exception as exc:
                    error = CallbackError(self._target_time, callback, exc)
                    errors.append(error)
                    self._report(error)
        finally:
            self._cancel_wait()
            self._callbacks.clear()
        return errors

    def _schedule_awaitable(self, callback: TaskCallback, awaitable: Any) -> None:
        """Run an async callback's result on the running loop; failures go to the error channel."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError("async callback needs a running event loop") from None

        future = asyncio.ensure_future(awaitable, loop=loop)

        _background.add(future)

        def _done(fut: asyncio.Future) -> None:
            _background.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if isinstance(exc, Exception):
                self._report(CallbackError(self._target_time, callback, exc))

        future.add_done_callback(_done)

    def _report(self, error: CallbackError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("Error channel failed for group %d", self._target_time)

    def destroy(self) -> None:
        """Cancel the wait and drop every callback without invoking it."""
        if self._state is not GroupState.SCHEDULED:
            return
        try:
            self._settle(GroupState.DESTROYED)
        finally:
            self._cancel_wait()
            self._callbacks.clear()
        logger.info("Group %d destroyed", self._target_time, extra={"target_time": self._target_time})

    def __repr__(self) -> str:
        return (
            f"TaskGroup(target_time={self._target_time}, state={self._state.value}, "
            f"callbacks={len(self._callbacks)})"
        )
