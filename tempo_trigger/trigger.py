# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
TimerTrigger — public entry point.

    trigger = create_timer_trigger()
    cancel = trigger.on("2026-10-19T18:00:00+08:00", send_report)
    ...
    cancel()

Every call must happen on the thread that drives the clock (the running
asyncio loop for the default LoopClock).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable as IterableABC
from datetime import date
from typing import Callable, Iterable, List, Optional, Union

from tempo_trigger.core.config import settings
from tempo_trigger.core.errors import CallbackError
from tempo_trigger.core.metrics import Metrics
from tempo_trigger.core.timeutil import TimeValue, normalize_time
from tempo_trigger.kernel.clock import Clock, LoopClock
from tempo_trigger.kernel.registry import TriggerHandle, TriggerRegistry
from tempo_trigger.kernel.strategies import TickStrategyResolver
from tempo_trigger.kernel.task_group import TaskCallback
from tempo_trigger.protocols.schema import PendingTask, TriggerStats

logger = logging.getLogger("tempo.trigger")

ErrorHandler = Callable[[CallbackError], None]


def log_callback_error(error: CallbackError) -> None:
    """Default error channel: log with the original traceback."""
    logger.error(
        "%s", error.message,
        exc_info=(type(error.error), error.error, error.error.__traceback__),
        extra={"target_time": error.target_time},
    )


class TimerTrigger:
    """One-shot, time-of-day callbacks grouped by identical target instant."""

    def __init__(
        self,
        precision_threshold_seconds: Optional[int] = None,
        clock: Optional[Clock] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        if precision_threshold_seconds is None:
            precision_threshold_seconds = settings.PRECISION_THRESHOLD_SECONDS
        self._clock = clock or LoopClock()
        self._metrics = Metrics()
        self._registry = TriggerRegistry(
            self._clock,
            TickStrategyResolver(precision_threshold_seconds),
            on_error=on_error or log_callback_error,
            metrics=self._metrics,
        )

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    def precision_threshold_seconds(self) -> int:
        return self._registry.resolver.precision_threshold_seconds

    # ── Registration ────────────────────────────────────────────

    def on(self, target_time: TimeValue, callback: TaskCallback) -> TriggerHandle:
        """
        Run callback once at target_time.

        Raises InvalidTimeValue before anything is scheduled if target_time
        cannot be converted. A target at or before now fires during this
        call. The returned handle is callable; calling it cancels this
        registration only.
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {type(callback).__name__}")
        ts = normalize_time(target_time)
        return self._registry.register(ts, callback)

    once = on

    # ── Bulk control ────────────────────────────────────────────

    def emit_now(
        self,
        targets: Union[TimeValue, Iterable[TimeValue], None] = None,
    ) -> List[CallbackError]:
        """
        Fire groups immediately and remove them.

        With no argument every live group fires. Otherwise only groups whose
        target matches one of the given values fire; unmatched values are
        ignored. Any iterable other than a string is read as a collection of
        values. All values are converted before anything fires.
        """
        if targets is None:
            return self._registry.fire_now()
        if isinstance(targets, IterableABC) and not isinstance(targets, (str, bytes, date)):
            values = [normalize_time(t) for t in targets]
        else:
            values = [normalize_time(targets)]
        return self._registry.fire_now(values)

    def clear_all(self) -> int:
        """Destroy every live group without invoking any callback."""
        return self._registry.cancel_all()

    # ── Introspection ───────────────────────────────────────────

    def get_stats(self) -> TriggerStats:
        return self._registry.stats()

    def get_pending_tasks(self) -> List[PendingTask]:
        return self._registry.list_pending()

    def __len__(self) -> int:
        return len(self._registry)

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"TimerTrigger(active_groups={stats.active_groups}, "
            f"total_callbacks={stats.total_callbacks})"
        )


def create_timer_trigger(
    *,
    precision_threshold_seconds: Optional[int] = None,
    clock: Optional[Clock] = None,
    on_error: Optional[ErrorHandler] = None,
) -> TimerTrigger:
    """Build a TimerTrigger with its own registry, resolver and metrics."""
    return TimerTrigger(
        precision_threshold_seconds=precision_threshold_seconds,
        clock=clock,
        on_error=on_error,
    )
