# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Time normalisation — turn the accepted time literals into epoch milliseconds.

Accepted forms:
  - int / float          milliseconds since the Unix epoch
  - str                  ISO-8601 date or date-time ("2026-10-19T08:30:00Z")
  - datetime / date      naive values are interpreted in local time
  - any object with a timestamp() method returning epoch seconds
"""

from __future__ import annotations

import math
import time
from datetime import date, datetime, time as dtime
from typing import Any, Union

from tempo_trigger.core.errors import InvalidTimeValue

TimeValue = Union[int, float, str, date, datetime, Any]


def now_ms() -> int:
    """Current wall-clock instant in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def _from_number(value: Union[int, float]) -> int:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidTimeValue(value, "not a finite number")
        return math.floor(value)
    return value


def _from_datetime(value: datetime) -> int:
    try:
        return math.floor(value.timestamp() * 1000)
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidTimeValue(value, str(exc)) from exc


def _from_string(value: str) -> int:
    text = value.strip()
    if not text:
        raise InvalidTimeValue(value, "empty string")
    # Python < 3.11 does not accept the trailing designator
    if text[-1] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidTimeValue(value, "not an ISO-8601 date or date-time") from exc
    return _from_datetime(parsed)


def normalize_time(value: TimeValue) -> int:
    """
    Convert a time value into an integer millisecond instant.

    Raises InvalidTimeValue when the value cannot be converted; nothing is
    scheduled in that case.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidTimeValue(value, "unsupported type")
    if isinstance(value, (int, float)):
        return _from_number(value)
    if isinstance(value, str):
        return _from_string(value)
    if isinstance(value, datetime):
        return _from_datetime(value)
    if isinstance(value, date):
        return _from_datetime(datetime.combine(value, dtime.min))

    to_timestamp = getattr(value, "timestamp", None)
    if callable(to_timestamp):
        try:
            seconds = float(to_timestamp())
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise InvalidTimeValue(value, str(exc)) from exc
        return _from_number(seconds * 1000)

    raise InvalidTimeValue(value, "unsupported type")
