# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Trigger Errors — Unified error structure.

InvalidTimeValue surfaces synchronously to the caller of on()/emit_now().
CallbackError never propagates out of a task group; it is handed to the
trigger's error channel instead.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional


class TriggerError(Exception):
    """Base error with a stable code and structured details."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidTimeValue(TriggerError, ValueError):
    def __init__(self, value: Any, reason: str = ""):
        self.value = value
        message = f"Invalid target time: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            code="INVALID_TIME_VALUE",
            message=message,
            details={"value": repr(value)},
        )


class CallbackError(TriggerError):
    """A user callback raised while its task group was executing."""

    def __init__(
        self,
        target_time: int,
        callback: Callable[[], Any],
        error: Exception,
    ):
        self.target_time = target_time
        self.callback = callback
        self.error = error
        inner = getattr(callback, "__wrapped__", callback)
        name = getattr(inner, "__qualname__", None) or repr(inner)
        super().__init__(
            code="CALLBACK_ERROR",
            message=f"Callback {name} failed for target {target_time}: {error}",
            details={
                "target_time": target_time,
                "callback": name,
                "error_type": type(error).__name__,
            },
        )
        self.__cause__ = error
