# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Shared test fixtures for all TempoTrigger tests.
"""

import pytest

from tempo_trigger.kernel.clock import ManualClock
from tempo_trigger.kernel.strategies import TickStrategyResolver
from tempo_trigger.trigger import create_timer_trigger

# 2025-10-09T08:53:20Z, aligned to a whole second
START_MS = 1_760_000_000_000


@pytest.fixture
def clock() -> ManualClock:
    """Deterministic clock starting on a whole-second boundary."""
    return ManualClock(START_MS)


@pytest.fixture
def resolver() -> TickStrategyResolver:
    return TickStrategyResolver()


@pytest.fixture
def trigger(clock):
    """TimerTrigger driven by the manual clock, collecting callback errors."""
    errors = []
    t = create_timer_trigger(clock=clock, on_error=errors.append)
    t.errors = errors
    return t


@pytest.fixture
def calls():
    """Record of callback invocations; calls.cb(name) builds a recording callback."""

    class Calls(list):
        def cb(self, name):
            return lambda: self.append(name)

    return Calls()
