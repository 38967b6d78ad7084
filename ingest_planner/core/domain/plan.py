"""
Plan, slice and task records produced by the assembler.

Slices and tasks are constructed *pending*: they only know their local
sequence within the plan. Durable ids exist only after the persistence
collaborator saves them, at which point a separate binding step moves each
record to *bound*. Binding happens exactly once.
"""

# pylint: disable=too-many-instance-attributes
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ingest_planner.core.domain.enums import AssemblyStatus, PlanStatus
from ingest_planner.core.domain.errors import BindingError, PlanStateError
from ingest_planner.core.domain.plan_state_machine import (
    is_terminal_status,
    is_valid_transition,
)
from ingest_planner.core.domain.timeutil import format_instant


class BindingState(str, Enum):
    PENDING = "PENDING"
    BOUND = "BOUND"


def _instant_or_none(value: datetime | None) -> str | None:
    return format_instant(value) if value is not None else None


@dataclass(slots=True)
class Plan:
    """One scheduling cycle's unit of work for a (provenance, operation)."""

    schedule_instance_id: int
    plan_key: str
    provenance_code: str
    endpoint: str | None
    operation_code: str
    expr_hash: str
    expr_snapshot_json: str
    config_snapshot_json: str | None
    config_snapshot_hash: str | None
    window_from: datetime | None
    window_to: datetime | None
    slice_strategy: str
    slice_params_json: str
    status: PlanStatus = PlanStatus.DRAFT
    id: int | None = None

    def start_slicing(self) -> None:
        self._transition(PlanStatus.SLICING)

    def mark_ready(self) -> None:
        self._transition(PlanStatus.READY)

    def mark_failed(self) -> None:
        self._transition(PlanStatus.FAILED)

    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    def assign_id(self, plan_id: int) -> None:
        if self.id is not None and self.id != plan_id:
            raise BindingError(f"Plan {self.plan_key} already has id {self.id}")
        self.id = plan_id

    def _transition(self, next_status: PlanStatus) -> None:
        if not is_valid_transition(self.status, next_status):
            raise PlanStateError(
                f"Illegal plan transition {self.status.value} -> {next_status.value} "
                f"(planKey={self.plan_key})"
            )
        self.status = next_status

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "scheduleInstanceId": self.schedule_instance_id,
            "planKey": self.plan_key,
            "provenanceCode": self.provenance_code,
            "endpoint": self.endpoint,
            "operationCode": self.operation_code,
            "exprHash": self.expr_hash,
            "exprSnapshotJson": self.expr_snapshot_json,
            "configSnapshotJson": self.config_snapshot_json,
            "configSnapshotHash": self.config_snapshot_hash,
            "windowFrom": _instant_or_none(self.window_from),
            "windowTo": _instant_or_none(self.window_to),
            "sliceStrategy": self.slice_strategy,
            "sliceParamsJson": self.slice_params_json,
            "status": self.status.value,
        }


@dataclass(slots=True)
class Slice:
    """A bounded sub-unit of a plan's window carrying its own expression."""

    sequence: int
    provenance_code: str
    slice_signature_hash: str
    slice_spec_json: str
    expr_hash: str
    expr_snapshot_json: str
    id: int | None = None
    plan_id: int | None = None
    binding: BindingState = BindingState.PENDING

    def bind(self, plan_id: int) -> None:
        if self.binding is BindingState.BOUND:
            raise BindingError(f"Slice #{self.sequence} is already bound to plan {self.plan_id}")
        self.plan_id = plan_id
        self.binding = BindingState.BOUND

    def assign_id(self, slice_id: int) -> None:
        if self.id is not None and self.id != slice_id:
            raise BindingError(f"Slice #{self.sequence} already has id {self.id}")
        self.id = slice_id

    def is_bound(self) -> bool:
        return self.binding is BindingState.BOUND

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "planId": self.plan_id,
            "sequence": self.sequence,
            "provenanceCode": self.provenance_code,
            "sliceSignatureHash": self.slice_signature_hash,
            "sliceSpecJson": self.slice_spec_json,
            "exprHash": self.expr_hash,
            "exprSnapshotJson": self.expr_snapshot_json,
            "binding": self.binding.value,
        }


@dataclass(slots=True)
class Task:
    """Execution record derived 1:1 from a slice."""

    schedule_instance_id: int
    slice_sequence: int
    provenance_code: str
    operation_code: str
    params_json: str
    idempotency_key: str
    expr_hash: str
    priority: int | None
    requested_window_from: datetime | None
    id: int | None = None
    plan_id: int | None = None
    slice_id: int | None = None
    binding: BindingState = BindingState.PENDING

    @property
    def sequence(self) -> int:
        return self.slice_sequence

    def bind(self, plan_id: int, slice_id: int | None) -> None:
        if self.binding is BindingState.BOUND:
            raise BindingError(
                f"Task {self.idempotency_key} is already bound to plan {self.plan_id}"
            )
        self.plan_id = plan_id
        self.slice_id = slice_id
        self.binding = BindingState.BOUND

    def assign_id(self, task_id: int) -> None:
        if self.id is not None and self.id != task_id:
            raise BindingError(f"Task {self.idempotency_key} already has id {self.id}")
        self.id = task_id

    def is_bound(self) -> bool:
        return self.binding is BindingState.BOUND

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "planId": self.plan_id,
            "sliceId": self.slice_id,
            "sequence": self.slice_sequence,
            "scheduleInstanceId": self.schedule_instance_id,
            "provenanceCode": self.provenance_code,
            "operationCode": self.operation_code,
            "paramsJson": self.params_json,
            "idempotencyKey": self.idempotency_key,
            "exprHash": self.expr_hash,
            "priority": self.priority,
            "requestedWindowFrom": _instant_or_none(self.requested_window_from),
            "binding": self.binding.value,
        }


@dataclass(frozen=True, slots=True)
class PlanAssembly:
    """Plan + slices + tasks produced by one assembly call."""

    plan: Plan
    slices: tuple[Slice, ...] = field(default_factory=tuple)
    tasks: tuple[Task, ...] = field(default_factory=tuple)
    status: AssemblyStatus = AssemblyStatus.FAILED

    def is_ready(self) -> bool:
        return self.status is AssemblyStatus.READY

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "plan": self.plan.to_json_obj(),
            "slices": [s.to_json_obj() for s in self.slices],
            "tasks": [t.to_json_obj() for t in self.tasks],
        }
