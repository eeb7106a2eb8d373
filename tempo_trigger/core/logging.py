# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Structured Logging — one JSON object per line for the tempo.* loggers.

Scheduling context passed through `extra=` (target instant, group size,
strategy, armed delay) is collected under a "context" key.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from tempo_trigger.core.config import settings

LOGGER_NAMESPACE = "tempo"
CONTEXT_KEYS = ("target_time", "group_size", "strategy", "delay_ms")


class StructuredFormatter(logging.Formatter):
    """Render a record as JSON with a UTC timestamp and scheduling context."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = {
            key: getattr(record, key)
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        }
        if context:
            entry["context"] = context
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> logging.Handler:
    """
    Send the tempo.* loggers to stream as JSON lines.

    level defaults to settings.LOG_LEVEL. Handlers installed by an earlier
    call are replaced; the root logger is left alone.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter())

    base = logging.getLogger(LOGGER_NAMESPACE)
    for old in [h for h in base.handlers if isinstance(h.formatter, StructuredFormatter)]:
        base.removeHandler(old)
    base.addHandler(handler)
    base.setLevel(getattr(logging, level_name, logging.INFO))
    base.propagate = False
    return handler
