"""Plan assembly.

Turns a validated (trigger, window, config snapshot, plan expression) into
a ``PlanAssembly``: one Plan, its Slices and one Task per Slice. Assembly is
pure and stateless: identical inputs produce byte-identical keys, hashes and
JSON snapshots. Persistence-level dedup relies on that.
"""

from __future__ import annotations

import logging

from ingest_planner.core.domain.enums import AssemblyStatus, SliceStrategyCode
from ingest_planner.core.domain.keys import build_plan_key, build_task_idempotency_key
from ingest_planner.core.domain.plan import Plan, PlanAssembly, Slice, Task
from ingest_planner.core.domain.types import PlannerWindow, ProvenanceConfigSnapshot, TriggerNorm
from ingest_planner.core.expr.canonical import canonical_json, canonicalize, canonicalize_expr
from ingest_planner.planning.expression import PlanExpression
from ingest_planner.planning.slicing.base import SliceDraft, SlicePlanningContext
from ingest_planner.planning.slicing.registry import SlicePlannerRegistry

LOGGER = logging.getLogger(__name__)


def determine_slice_strategy(trigger: TriggerNorm) -> SliceStrategyCode:
    """UPDATE re-reads a scope in one go; everything else is time sliced."""
    if trigger.is_update():
        return SliceStrategyCode.SINGLE
    return SliceStrategyCode.TIME


class PlanAssembler:
    def __init__(self, registry: SlicePlannerRegistry | None = None) -> None:
        self._registry = registry or SlicePlannerRegistry.default()

    def assemble(
        self,
        trigger: TriggerNorm,
        window: PlannerWindow,
        snapshot: ProvenanceConfigSnapshot | None,
        plan_expression: PlanExpression,
    ) -> PlanAssembly:
        """
        Build the plan tree for one trigger.

        The Plan moves DRAFT -> SLICING -> READY when at least one slice
        (and therefore one task) was planned, and to FAILED otherwise. A
        FAILED assembly is a normal return value so the caller can persist
        it for observability.
        """

        # ------------------------------------------------------------------
        # 1. Plan in DRAFT
        # ------------------------------------------------------------------

        strategy = determine_slice_strategy(trigger)
        config_json, config_hash = self._canonical_config(snapshot)

        plan = Plan(
            schedule_instance_id=trigger.schedule_instance_id,
            plan_key=build_plan_key(
                provenance_code=trigger.provenance_code,
                operation_code=trigger.operation_code.value,
                endpoint=trigger.endpoint_name,
                window_from=window.window_from,
                window_to=window.window_to,
            ),
            provenance_code=trigger.provenance_code,
            endpoint=trigger.endpoint_name,
            operation_code=trigger.operation_code.value,
            expr_hash=plan_expression.hash,
            expr_snapshot_json=plan_expression.json_snapshot,
            config_snapshot_json=config_json,
            config_snapshot_hash=config_hash,
            window_from=window.window_from,
            window_to=window.window_to,
            slice_strategy=strategy.value,
            slice_params_json=canonical_json({"strategy": strategy.value}),
        )
        plan.start_slicing()

        # ------------------------------------------------------------------
        # 2. Slices
        # ------------------------------------------------------------------

        drafts = self._plan_drafts(strategy, trigger, window, snapshot, plan_expression)
        slices = [self._slice_from_draft(trigger, draft) for draft in drafts]

        # ------------------------------------------------------------------
        # 3. Tasks (1:1 with slices, same order)
        # ------------------------------------------------------------------

        tasks = [
            self._task_for_slice(trigger, window, slice_, draft)
            for slice_, draft in zip(slices, drafts)
        ]

        # ------------------------------------------------------------------
        # 4. Terminal status
        # ------------------------------------------------------------------

        if not slices or not tasks:
            plan.mark_failed()
            LOGGER.warning(
                "Plan assembled without slices",
                extra={"plan_key": plan.plan_key, "slice_strategy": strategy.value},
            )
            return PlanAssembly(plan, tuple(slices), tuple(tasks), AssemblyStatus.FAILED)

        plan.mark_ready()
        LOGGER.info(
            "Plan assembled",
            extra={
                "plan_key": plan.plan_key,
                "slice_strategy": strategy.value,
                "slice_count": len(slices),
            },
        )
        return PlanAssembly(plan, tuple(slices), tuple(tasks), AssemblyStatus.READY)

    def _plan_drafts(
        self,
        strategy: SliceStrategyCode,
        trigger: TriggerNorm,
        window: PlannerWindow,
        snapshot: ProvenanceConfigSnapshot | None,
        plan_expression: PlanExpression,
    ) -> list[SliceDraft]:
        planner = self._registry.get(strategy.value)
        if planner is None:
            LOGGER.error("No slice planner registered for strategy %s", strategy.value)
            return []
        context = SlicePlanningContext(trigger, window, plan_expression, snapshot)
        return list(planner.slice(context) or [])

    @staticmethod
    def _slice_from_draft(trigger: TriggerNorm, draft: SliceDraft) -> Slice:
        snapshot = canonicalize_expr(draft.expr)
        return Slice(
            sequence=draft.sequence,
            provenance_code=trigger.provenance_code,
            slice_signature_hash=draft.signature_seed,
            slice_spec_json=draft.spec_json,
            expr_hash=snapshot.hash,
            expr_snapshot_json=snapshot.canonical_json,
        )

    @staticmethod
    def _task_for_slice(
        trigger: TriggerNorm,
        window: PlannerWindow,
        slice_: Slice,
        draft: SliceDraft,
    ) -> Task:
        requested_from = draft.sub_from if draft.sub_from is not None else window.window_from
        return Task(
            schedule_instance_id=trigger.schedule_instance_id,
            slice_sequence=slice_.sequence,
            provenance_code=trigger.provenance_code,
            operation_code=trigger.operation_code.value,
            params_json=canonical_json({"sliceNo": slice_.sequence}),
            idempotency_key=build_task_idempotency_key(
                provenance_code=trigger.provenance_code,
                operation_code=trigger.operation_code.value,
                slice_signature_hash=slice_.slice_signature_hash,
            ),
            expr_hash=slice_.expr_hash,
            priority=trigger.priority.queue_value if trigger.priority is not None else None,
            requested_window_from=requested_from,
        )

    @staticmethod
    def _canonical_config(
        snapshot: ProvenanceConfigSnapshot | None,
    ) -> tuple[str | None, str | None]:
        if snapshot is None:
            return None, None
        result = canonicalize(snapshot)
        return result.canonical_json, result.hash
