# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Tick Strategies — how long a task group waits before looking again.

FINE    remaining <= threshold: wake on the next whole-second boundary.
COARSE  remaining >  threshold: halve the distance, never below one second.

Both are pure functions of a TickContext. The resolver picks one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_PRECISION_THRESHOLD_SECONDS = 60
MIN_COARSE_DELAY_MS = 1000
SECOND_MS = 1000


@dataclass(frozen=True)
class TickContext:
    now: int
    target_time: int

    @property
    def remaining_ms(self) -> int:
        return self.target_time - self.now


def fine_delay(ctx: TickContext) -> int:
    return SECOND_MS - (ctx.now % SECOND_MS)


def coarse_delay(ctx: TickContext) -> int:
    return max(ctx.remaining_ms // 2, MIN_COARSE_DELAY_MS)


class TickStrategy(str, Enum):
    FINE = "fine"
    COARSE = "coarse"

    def next_delay(self, ctx: TickContext) -> int:
        """Delay in milliseconds before the next tick."""
        if self is TickStrategy.FINE:
            return fine_delay(ctx)
        return coarse_delay(ctx)


class TickStrategyResolver:
    """Chooses FINE or COARSE from the whole seconds left until the target."""

    __slots__ = ("_threshold",)

    def __init__(self, precision_threshold_seconds: int = DEFAULT_PRECISION_THRESHOLD_SECONDS) -> None:
        if precision_threshold_seconds < 0:
            raise ValueError(
                f"precision_threshold_seconds must be >= 0, got {precision_threshold_seconds}"
            )
        self._threshold = int(precision_threshold_seconds)

    @property
    def precision_threshold_seconds(self) -> int:
        return self._threshold

    def resolve(self, ctx: TickContext) -> TickStrategy:
        remaining_seconds = ctx.remaining_ms // SECOND_MS
        if remaining_seconds <= self._threshold:
            return TickStrategy.FINE
        return TickStrategy.COARSE

    def next_delay(self, ctx: TickContext) -> int:
        return self.resolve(ctx).next_delay(ctx)

    def __repr__(self) -> str:
        return f"TickStrategyResolver(precision_threshold_seconds={self._threshold})"
