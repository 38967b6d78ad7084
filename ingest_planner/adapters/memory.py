"""In-memory port implementations.

Used by the CLI and by tests. ``InMemoryPlanRepository`` enforces the
unique keys a relational store would: plan key and slice signature per plan
raise on conflict, while task idempotency keys are upsert-or-skip so at most
one task per logical slice stays live across overlapping plans.
"""

from __future__ import annotations

import itertools
from datetime import datetime
from typing import Mapping, Sequence

from ingest_planner.core.domain.errors import BindingError
from ingest_planner.core.domain.plan import Plan, Slice, Task
from ingest_planner.core.domain.types import ProvenanceConfigSnapshot


class StaticConfigPort:
    """Serves configuration snapshots keyed by provenance code."""

    def __init__(self, snapshots: Mapping[str, ProvenanceConfigSnapshot] | None = None) -> None:
        self._snapshots = dict(snapshots or {})

    def fetch_config(
        self,
        provenance_code: str,
        endpoint: str | None,
        operation_code: str,
    ) -> ProvenanceConfigSnapshot | None:
        return self._snapshots.get(provenance_code)


class StaticCursorPort:
    def __init__(self, watermarks: Mapping[tuple[str, str], datetime] | None = None) -> None:
        self._watermarks = dict(watermarks or {})

    def load_forward_watermark(self, provenance_code: str, operation_code: str) -> datetime | None:
        return self._watermarks.get((provenance_code, operation_code))


class StaticTaskQueuePort:
    def __init__(self, queued: int = 0) -> None:
        self.queued = queued

    def count_queued_tasks(self, provenance_code: str, operation_code: str) -> int:
        return self.queued


class InMemoryPlanRepository:
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._plans: dict[int, Plan] = {}
        self._plan_ids_by_key: dict[str, int] = {}
        self._slices: dict[int, list[Slice]] = {}
        # plan id -> (slice sequence within that plan, live task)
        self._tasks: dict[int, list[tuple[int, Task]]] = {}
        self._live_tasks: dict[str, Task] = {}

    def find_by_plan_key(self, plan_key: str) -> Plan | None:
        plan_id = self._plan_ids_by_key.get(plan_key)
        return self._plans.get(plan_id) if plan_id is not None else None

    def save(self, plan: Plan) -> Plan:
        existing = self._plan_ids_by_key.get(plan.plan_key)
        if existing is not None and existing != plan.id:
            raise ValueError(f"Duplicate plan key: {plan.plan_key}")
        if plan.id is None:
            plan.assign_id(next(self._ids))
        self._plans[plan.id] = plan
        self._plan_ids_by_key[plan.plan_key] = plan.id
        return plan

    def save_slices(self, slices: Sequence[Slice]) -> list[Slice]:
        saved: list[Slice] = []
        for slice_ in slices:
            if not slice_.is_bound() or slice_.plan_id not in self._plans:
                raise BindingError(f"Slice #{slice_.sequence} is not bound to a stored plan")
            stored = self._slices.setdefault(slice_.plan_id, [])
            if any(s.slice_signature_hash == slice_.slice_signature_hash for s in stored):
                raise ValueError(f"Duplicate slice signature: {slice_.slice_signature_hash}")
            slice_.assign_id(next(self._ids))
            stored.append(slice_)
            saved.append(slice_)
        return saved

    def save_tasks(self, tasks: Sequence[Task]) -> list[Task]:
        """Upsert-or-skip on idempotency key.

        A task whose key is already live is not stored again: the live task is
        linked to the incoming plan and returned in its place.
        """
        saved: list[Task] = []
        for task in tasks:
            if not task.is_bound() or task.plan_id not in self._plans:
                raise BindingError(f"Task {task.idempotency_key} is not bound to a stored plan")
            live = self._live_tasks.get(task.idempotency_key)
            if live is None:
                task.assign_id(next(self._ids))
                self._live_tasks[task.idempotency_key] = task
                live = task
            self._tasks.setdefault(task.plan_id, []).append((task.slice_sequence, live))
            saved.append(live)
        return saved

    def find_task(self, idempotency_key: str) -> Task | None:
        return self._live_tasks.get(idempotency_key)

    def find_slices(self, plan_id: int) -> list[Slice]:
        return sorted(self._slices.get(plan_id, []), key=lambda s: s.sequence)

    def find_tasks(self, plan_id: int) -> list[Task]:
        return [task for _, task in sorted(self._tasks.get(plan_id, []), key=lambda pair: pair[0])]
