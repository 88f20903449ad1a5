"""Runtime settings for guard execution.

Values come from keyword arguments or from ``STEPGUARD_*`` environment
variables, and are validated by pydantic.
"""

from __future__ import annotations
import os
from pydantic import BaseModel, ConfigDict, Field


class GuardSettings(BaseModel):
    """Timing settings shared by the guards of one step context."""
    model_config = ConfigDict(frozen=True)

    default_timeout_ms: int = Field(default=10_000, ge=0, description="Default polling deadline")
    poll_interval_ms: int = Field(default=10, gt=0, description="Delay between two polling attempts")
    invert_timeout_ms: int = Field(default=200, ge=0, description="Default deadline while an inverted step runs")

    @classmethod
    def from_env(cls) -> "GuardSettings":
        values = {}
        for field_name, env_name in (
            ("default_timeout_ms", "STEPGUARD_DEFAULT_TIMEOUT_MS"),
            ("poll_interval_ms", "STEPGUARD_POLL_INTERVAL_MS"),
            ("invert_timeout_ms", "STEPGUARD_INVERT_TIMEOUT_MS"),
        ):
            raw = os.getenv(env_name)
            if raw is not None:
                values[field_name] = raw
        return cls.model_validate(values)
