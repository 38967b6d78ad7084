"""
Planning event models.

These events represent immutable facts observed while planning a trigger.
They are consumed by loggers, recorders, and monitoring pipelines.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class PlanAssembledEvent:
    schedule_instance_id: int
    plan_key: str
    provenance_code: str
    operation_code: str

    status: str
    plan_id: int | None

    slice_count: int
    task_count: int

    window_from: str | None
    window_to: str | None

    # Tasks whose idempotency key was already live under an earlier plan.
    reused_task_count: int = 0


@dataclass(frozen=True, slots=True)
class PlanDedupHitEvent:
    schedule_instance_id: int
    plan_key: str
    provenance_code: str
    operation_code: str

    existing_plan_id: int | None


@dataclass(frozen=True, slots=True)
class PlanValidationFailedEvent:
    schedule_instance_id: int
    provenance_code: str
    operation_code: str

    error_code: str | None
    message: str


PlanningEvent = PlanAssembledEvent | PlanDedupHitEvent | PlanValidationFailedEvent

PLANNING_EVENT_TYPES: tuple[type, ...] = (
    PlanAssembledEvent,
    PlanDedupHitEvent,
    PlanValidationFailedEvent,
)


def event_to_json_obj(event: PlanningEvent) -> dict[str, Any]:
    """Flat JSON form shared by every sink: ``{"type": <class name>, **fields}``."""
    return {"type": type(event).__name__, **asdict(event)}
