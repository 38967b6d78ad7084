"""Persistence boundary for plans, slices and tasks.

The repository owns durable ids: ``save`` and ``save_slices`` /
``save_tasks`` assign them (``assign_id``) on the records they are given and
return those records. Writes for one plan happen under a single transaction
in real implementations; the planner only relies on call order.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from ingest_planner.core.domain.plan import Plan, Slice, Task


class PlanRepository(Protocol):
    def find_by_plan_key(self, plan_key: str) -> Plan | None:
        """Return the stored plan with this natural key, if any."""

    def save(self, plan: Plan) -> Plan:
        """Persist the plan and assign its id."""

    def save_slices(self, slices: Sequence[Slice]) -> list[Slice]:
        """Persist bound slices and assign their ids."""

    def save_tasks(self, tasks: Sequence[Task]) -> list[Task]:
        """Persist bound tasks, upsert-or-skip on ``idempotency_key``.

        Returns one task per input, in input order. For a key that is already
        live the stored task comes back instead of the input, which keeps no id.
        """

    def find_task(self, idempotency_key: str) -> Task | None:
        """Return the live task holding this idempotency key, if any."""

    def find_slices(self, plan_id: int) -> list[Slice]:
        """Return the plan's slices ordered by sequence."""

    def find_tasks(self, plan_id: int) -> list[Task]:
        """Return the live tasks covering the plan, ordered by its slice sequence.

        Includes tasks first stored under an earlier plan that shares a slice.
        """
