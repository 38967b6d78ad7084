"""Core input models of the planner.

These pydantic models describe the trigger, the provenance configuration
snapshot supplied by the registry, and the planning window. Inputs are frozen:
one assembly call never mutates them.
"""

# pylint: disable=missing-class-docstring,missing-function-docstring
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ingest_planner.core.domain.enums import (
    Endpoint,
    OperationCode,
    Priority,
    Scheduler,
    TriggerType,
)
from ingest_planner.core.domain.timeutil import ensure_utc

# ---------------------------------------------------------------------------
# Planning window
# ---------------------------------------------------------------------------


class PlannerWindow(BaseModel):
    """Half-open window ``[window_from, window_to)``.

    Both bounds ``None`` means a full/unbounded scan. The model itself does
    not reject inverted windows; that decision belongs to the validator.
    """

    window_from: datetime | None = Field(default=None, alias="from")
    window_to: datetime | None = Field(default=None, alias="to")

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @field_validator("window_from", "window_to")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @classmethod
    def of(cls, window_from: datetime | None, window_to: datetime | None) -> PlannerWindow:
        return cls(window_from=window_from, window_to=window_to)

    @classmethod
    def full(cls) -> PlannerWindow:
        return cls()

    def is_full(self) -> bool:
        return self.window_from is None and self.window_to is None

    def is_bounded(self) -> bool:
        return self.window_from is not None and self.window_to is not None

    def duration(self) -> timedelta | None:
        if not self.is_bounded():
            return None
        return self.window_to - self.window_from


# ---------------------------------------------------------------------------
# Provenance configuration snapshot (read-only, from the registry)
# ---------------------------------------------------------------------------


class WindowOffsetConfig(BaseModel):
    """Per-source window/offset policy."""

    window_mode_code: str | None = None
    window_size_value: int | None = None
    window_size_unit_code: str | None = None
    calendar_align_to: str | None = None
    lookback_value: int | None = None
    lookback_unit_code: str | None = None
    overlap_value: int | None = None
    overlap_unit_code: str | None = None
    watermark_lag_seconds: int | None = None
    offset_type_code: str | None = None
    offset_field_name: str | None = None
    offset_date_format: str | None = None
    default_date_field_name: str | None = None
    max_ids_per_window: int | None = None
    max_window_span_seconds: int | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator(
        "window_mode_code",
        "window_size_unit_code",
        "calendar_align_to",
        "lookback_unit_code",
        "overlap_unit_code",
        "offset_type_code",
        "offset_field_name",
        "offset_date_format",
        "default_date_field_name",
    )
    @classmethod
    def _strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class ProvenanceInfo(BaseModel):
    provenance_id: int | None = None
    code: str = Field(..., min_length=1)
    name: str | None = None
    base_url_default: str | None = None
    timezone_default: str | None = None
    docs_url: str | None = None
    active: bool = True
    lifecycle_status_code: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class ProvenanceConfigSnapshot(BaseModel):
    """Configuration snapshot consumed by the planner.

    Only ``window_offset`` and the provenance timezone influence planning.
    Everything else is carried for audit (it is part of the config hash).
    """

    provenance: ProvenanceInfo
    window_offset: WindowOffsetConfig | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> ProvenanceConfigSnapshot:
        return cls.model_validate(obj)

    @property
    def timezone(self) -> str | None:
        return self.provenance.timezone_default


# ---------------------------------------------------------------------------
# Trigger
# ---------------------------------------------------------------------------


class TriggerNorm(BaseModel):
    """Normalized trigger handed to the planner."""

    schedule_instance_id: int
    provenance_code: str = Field(..., min_length=1)
    endpoint: Endpoint | None = None
    operation_code: OperationCode
    step: str | None = None
    trigger_type: TriggerType = TriggerType.SCHEDULE
    scheduler: Scheduler = Scheduler.XXL
    scheduler_job_id: str | None = None
    scheduler_log_id: str | None = None
    requested_window_from: datetime | None = None
    requested_window_to: datetime | None = None
    priority: Priority | None = None
    trigger_params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("requested_window_from", "requested_window_to")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    def is_harvest(self) -> bool:
        return self.operation_code == OperationCode.HARVEST

    def is_backfill(self) -> bool:
        return self.operation_code == OperationCode.BACKFILL

    def is_update(self) -> bool:
        return self.operation_code == OperationCode.UPDATE

    @property
    def endpoint_name(self) -> str | None:
        return self.endpoint.value if self.endpoint is not None else None


class PlanIngestionRequest(BaseModel):
    """Raw trigger as delivered by a scheduler adapter."""

    provenance_code: str = Field(..., min_length=1)
    endpoint: Endpoint | None = None
    operation_code: OperationCode
    step: str | None = None
    trigger_type: TriggerType = TriggerType.SCHEDULE
    scheduler: Scheduler = Scheduler.XXL
    scheduler_job_id: str | None = None
    scheduler_log_id: str | None = None
    requested_window_from: datetime | None = None
    requested_window_to: datetime | None = None
    priority: Priority | None = None
    triggered_at: datetime
    schedule_instance_id: int = 0
    trigger_params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator(
        "endpoint", "operation_code", "trigger_type", "scheduler", "priority", mode="before"
    )
    @classmethod
    def _upper_codes(cls, value: Any) -> Any:
        # Scheduler parameters arrive in arbitrary case.
        if isinstance(value, str):
            return value.strip().upper() or None
        return value

    @field_validator("requested_window_from", "requested_window_to", "triggered_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> PlanIngestionRequest:
        return cls.model_validate(obj)

    def to_trigger_norm(self) -> TriggerNorm:
        return TriggerNorm(
            schedule_instance_id=self.schedule_instance_id,
            provenance_code=self.provenance_code,
            endpoint=self.endpoint,
            operation_code=self.operation_code,
            step=self.step,
            trigger_type=self.trigger_type,
            scheduler=self.scheduler,
            scheduler_job_id=self.scheduler_job_id,
            scheduler_log_id=self.scheduler_log_id,
            requested_window_from=self.requested_window_from,
            requested_window_to=self.requested_window_to,
            priority=self.priority,
            trigger_params=dict(self.trigger_params),
        )
