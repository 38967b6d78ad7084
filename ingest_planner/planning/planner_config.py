"""Planner settings model.

Process-level knobs of the planning core. Per-source policy lives in the
provenance configuration snapshot; these settings only provide defaults and
guard rails.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PlannerSettings(BaseModel):
    """Planner defaults and limits.

    JSON example:
        {
          "default_window_size_hours": 24,
          "default_step": "PT1H",
          "max_slice_count": 1000,
          "queue_threshold": 50
        }
    """

    default_window_size_hours: int = Field(default=24, gt=0)
    default_step: timedelta = timedelta(hours=1)
    max_slice_count: int = Field(default=1000, gt=0)
    queue_threshold: int = Field(default=50, ge=0)
    min_window: timedelta = timedelta(minutes=1)
    max_window: timedelta = timedelta(days=30)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, settings_obj: dict[str, Any] | None) -> PlannerSettings:
        return cls.model_validate(settings_obj or {})

    @model_validator(mode="after")
    def validate_consistency(self) -> PlannerSettings:
        if self.default_step <= timedelta(0):
            raise ValueError("default_step must be positive")
        if self.min_window <= timedelta(0):
            raise ValueError("min_window must be positive")
        if self.max_window < self.min_window:
            raise ValueError("max_window must be >= min_window")
        return self

    @property
    def default_window_size(self) -> timedelta:
        return timedelta(hours=self.default_window_size_hours)
