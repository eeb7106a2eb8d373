# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
TempoTrigger — one-shot time-of-day callbacks with adaptive polling.

Callbacks that share a target instant share one task group and one wait.
Far from the target the wait halves the remaining distance; inside the
precision threshold it wakes on every whole second.
"""

from tempo_trigger.core.errors import CallbackError, InvalidTimeValue, TriggerError
from tempo_trigger.kernel.clock import Clock, LoopClock, ManualClock
from tempo_trigger.kernel.registry import TriggerHandle
from tempo_trigger.protocols.schema import PendingTask, TriggerStats
from tempo_trigger.trigger import TimerTrigger, create_timer_trigger

__all__ = [
    "CallbackError",
    "Clock",
    "InvalidTimeValue",
    "LoopClock",
    "ManualClock",
    "PendingTask",
    "TimerTrigger",
    "TriggerError",
    "TriggerHandle",
    "TriggerStats",
    "create_timer_trigger",
]
