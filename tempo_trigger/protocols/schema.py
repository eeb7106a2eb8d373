# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
Introspection Schema — read-only views over the trigger registry.

These are snapshots: mutating a returned model never touches a live group.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TriggerStats(BaseModel):
    """Aggregate counts over every live task group."""

    model_config = ConfigDict(frozen=True)

    active_groups: int = Field(
        default=0,
        ge=0,
        description="Number of live task groups (one per distinct target instant)",
    )
    total_callbacks: int = Field(
        default=0,
        ge=0,
        description="Callbacks registered across all live task groups",
    )


class PendingTask(BaseModel):
    """One live task group as seen at snapshot time."""

    model_config = ConfigDict(frozen=True)

    target_time: int = Field(
        ...,
        description="Target instant in epoch milliseconds",
    )
    callback_count: int = Field(
        ...,
        ge=0,
        description="Callbacks waiting on this target instant",
    )
    remaining_ms: int = Field(
        ...,
        description="target_time minus now; zero or negative once due",
    )
