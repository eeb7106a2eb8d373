# Copyright (c) 2026 TempoTrigger Contributors. All Rights Reserved.

"""
TempoTrigger Configuration — Environment-driven settings.

All configuration is loaded from environment variables (or .env file).
Explicit arguments to create_timer_trigger() take precedence.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings
from pydantic import Field


class TriggerSettings(BaseSettings):
    """Library-wide configuration loaded from environment."""

    # --- Scheduling ---
    PRECISION_THRESHOLD_SECONDS: int = Field(
        default=60,
        ge=0,
        description="Remaining seconds at which second-aligned polling takes over from halving",
    )

    # --- Platform ---
    LOG_LEVEL: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


# Global singleton
settings = TriggerSettings()
