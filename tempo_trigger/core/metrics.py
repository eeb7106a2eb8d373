# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Metrics — In-memory counters for trigger observability.

Each TimerTrigger owns one instance; nothing here is process-wide.
Histograms keep a sliding window of the latest observations.
"""

from __future__ import annotations

import time
from collections import Counter, deque
from typing import Any, Deque, Dict, Optional

DEFAULT_WINDOW = 1000


class Histogram:
    """Bounded window of observations, e.g. fire lateness in ms."""

    __slots__ = ("_values",)

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        self._values: Deque[float] = deque(maxlen=window)

    def add(self, value: float) -> None:
        self._values.append(value)

    def __len__(self) -> int:
        return len(self._values)

    def summary(self) -> Optional[Dict[str, float]]:
        if not self._values:
            return None
        values = self._values
        return {
            "count": len(values),
            "avg": round(sum(values) / len(values), 2),
            "max": round(max(values), 2),
            "min": round(min(values), 2),
        }


class Metrics:
    """Counters, gauges and lateness histograms for one trigger."""

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        self._window = window
        self._counters: Counter = Counter()
        self._gauges: Dict[str, float] = {}
        self._histograms: Dict[str, Histogram] = {}
        self._started = time.monotonic()

    def inc(self, name: str, amount: int = 1) -> None:
        self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        return self._counters[name]

    def set_gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def get_gauge(self, name: str) -> float:
        return self._gauges.get(name, 0.0)

    def observe(self, name: str, value: float) -> None:
        histogram = self._histograms.get(name)
        if histogram is None:
            histogram = self._histograms[name] = Histogram(self._window)
        histogram.add(value)

    def summary(self, name: str) -> Optional[Dict[str, float]]:
        histogram = self._histograms.get(name)
        return histogram.summary() if histogram is not None else None

    def snapshot(self) -> Dict[str, Any]:
        """Export everything as plain dicts."""
        histograms = {}
        for name, histogram in self._histograms.items():
            summary = histogram.summary()
            if summary is not None:
                histograms[name] = summary
        return {
            "uptime_seconds": round(time.monotonic() - self._started, 1),
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "histograms": histograms,
        }

    def reset(self) -> None:
        self._counters.clear()
        self._gauges.clear()
        self._histograms.clear()
