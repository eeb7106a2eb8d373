# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Trigger Registry — target instant → live TaskGroup.

Groups detach themselves through their on_settle hook the moment they fire
or are destroyed, so the mapping only ever holds SCHEDULED groups. All
mutation happens on the single control thread that owns the clock.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from tempo_trigger.core.errors import CallbackError
from tempo_trigger.core.metrics import Metrics
from tempo_trigger.kernel.clock import Clock
from tempo_trigger.kernel.strategies import TickStrategyResolver
from tempo_trigger.kernel.task_group import TaskCallback, TaskGroup
from tempo_trigger.protocols.schema import PendingTask, TriggerStats

logger = logging.getLogger("tempo.registry")


class _Registration:
    """Wraps one user callback so identical callables stay separate registrations."""

    __slots__ = ("__wrapped__",)

    def __init__(self, callback: TaskCallback) -> None:
        self.__wrapped__ = callback

    def __call__(self) -> Any:
        return self.__wrapped__()


class TriggerHandle:
    """Returned by register(); cancel() removes exactly that registration."""

    def __init__(self, registry: TriggerRegistry, group: TaskGroup, entry: _Registration) -> None:
        self._registry = registry
        self._group = group
        self._entry = entry
        self._cancelled = False

    @property
    def target_time(self) -> int:
        return self._group.target_time

    @property
    def callback(self) -> TaskCallback:
        return self._entry.__wrapped__

    @property
    def active(self) -> bool:
        """True while the callback is still waiting to fire."""
        return not self._cancelled and not self._group.fired and not self._group.destroyed

    def cancel(self) -> bool:
        """Returns True if the callback was still pending and is now removed."""
        if self._cancelled:
            return False
        self._cancelled = True
        return self._registry._remove(self._group, self._entry)

    __call__ = cancel

    def __repr__(self) -> str:
        return f"TriggerHandle(target_time={self.target_time}, active={self.active})"


class TriggerRegistry:
    """Owns every live task group for one trigger."""

    def __init__(
        self,
        clock: Clock,
        resolver: TickStrategyResolver,
        on_error: Optional[Callable[[CallbackError], None]] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self._clock = clock
        self._resolver = resolver
        self._on_error = on_error
        self._metrics = metrics or Metrics()
        self._groups: Dict[int, TaskGroup] = {}

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def resolver(self) -> TickStrategyResolver:
        return self._resolver

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, target_time: object) -> bool:
        return target_time in self._groups

    def get(self, target_time: int) -> Optional[TaskGroup]:
        return self._groups.get(target_time)

    # ── Registration ────────────────────────────────────────────

    def register(self, target_time: int, callback: TaskCallback) -> TriggerHandle:
        """Add callback to the group for target_time, creating and starting it if needed."""
        entry = _Registration(callback)
        self._metrics.inc("callbacks_registered")

        group = self._groups.get(target_time)
        if group is not None:
            group.add_task(entry)
            return TriggerHandle(self, group, entry)

        group = TaskGroup(
            target_time,
            self._resolver,
            self._clock,
            callbacks=(entry,),
            on_settle=self._detach,
            on_error=self._report_error,
        )
        self._groups[target_time] = group
        self._metrics.inc("groups_created")
        self._update_gauge()
        logger.debug("Created group %d", target_time, extra={"target_time": target_time})
        group.start()
        return TriggerHandle(self, group, entry)

    def _remove(self, group: TaskGroup, entry: _Registration) -> bool:
        if not group.remove_task(entry):
            return False
        self._metrics.inc("callbacks_cancelled")
        if group.is_empty():
            group.destroy()
        return True

    def _detach(self, group: TaskGroup) -> None:
        if self._groups.get(group.target_time) is group:
            del self._groups[group.target_time]
        if group.fired:
            self._metrics.inc("groups_fired")
            self._metrics.observe("fire_lateness_ms", self._clock.now_ms() - group.target_time)
        else:
            self._metrics.inc("groups_destroyed")
        self._update_gauge()

    def _report_error(self, error: CallbackError) -> None:
        self._metrics.inc("callback_errors")
        if self._on_error is not None:
            self._on_error(error)

    def _update_gauge(self) -> None:
        self._metrics.set_gauge("active_groups", len(self._groups))

    # ── Bulk operations ─────────────────────────────────────────

    def fire_now(self, targets: Optional[Iterable[int]] = None) -> List[CallbackError]:
        """
        Execute matching groups immediately (all groups when targets is None).

        Targets without a live group are ignored. Returns the callback errors
        collected across every executed group.
        """
        if targets is None:
            selected = list(self._groups.values())
        else:
            selected = []
            for target_time in dict.fromkeys(targets):
                group = self._groups.get(target_time)
                if group is not None:
                    selected.append(group)

        errors: List[CallbackError] = []
        for group in selected:
            errors.extend(group.execute())
        return errors

    def cancel_all(self) -> int:
        """Destroy every live group without invoking callbacks. Returns the number destroyed."""
        groups = list(self._groups.values())
        for group in groups:
            group.destroy()
        self._groups.clear()
        self._update_gauge()
        if groups:
            logger.info("Cancelled %d group(s)", len(groups))
        return len(groups)

    # ── Introspection ───────────────────────────────────────────

    def stats(self) -> TriggerStats:
        return TriggerStats(
            active_groups=len(self._groups),
            total_callbacks=sum(g.task_count() for g in self._groups.values()),
        )

    def list_pending(self) -> List[PendingTask]:
        now = self._clock.now_ms()
        return [
            PendingTask(
                target_time=group.target_time,
                callback_count=group.task_count(),
                remaining_ms=group.remaining_ms(now),
            )
            for group in sorted(self._groups.values(), key=lambda g: g.target_time)
        ]
