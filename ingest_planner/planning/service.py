"""Plan ingestion orchestration.

``PlanIngestionService.ingest`` runs one trigger through the planning core
over injected ports: configuration, cursor, queue depth and persistence.
It performs no retries, never writes the watermark and publishes nothing
beyond planning events on the event bus.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ingest_planner.core.domain.errors import (
    BindingError,
    ErrorCatalog,
    IngestConfigurationError,
)
from ingest_planner.core.domain.enums import AssemblyStatus
from ingest_planner.core.domain.plan import Plan, PlanAssembly, Slice, Task
from ingest_planner.core.domain.timeutil import format_instant
from ingest_planner.core.domain.types import PlanIngestionRequest
from ingest_planner.core.events.event_bus import EventBus, NullEventBus
from ingest_planner.core.events.events import (
    PlanAssembledEvent,
    PlanDedupHitEvent,
    PlanValidationFailedEvent,
)
from ingest_planner.core.ports.cursor_port import CursorReadPort
from ingest_planner.core.ports.plan_repository import PlanRepository
from ingest_planner.core.ports.provenance_config_port import ProvenanceConfigPort
from ingest_planner.core.ports.task_queue_port import TaskQueuePort
from ingest_planner.planning.assembler import PlanAssembler
from ingest_planner.planning.expression import PlanExpressionBuilder
from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.slicing.registry import SlicePlannerRegistry
from ingest_planner.planning.validator import PlannerValidator
from ingest_planner.planning.window import WindowResolver

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlanIngestionResult:
    schedule_instance_id: int
    plan_id: int | None
    plan_key: str
    slice_ids: list[int | None] = field(default_factory=list)
    task_count: int = 0
    status: str = ""
    dedup_hit: bool = False
    reused_task_count: int = 0
    # Persisted view: bound plan, slices and the live tasks covering them.
    assembly: PlanAssembly | None = None


class PlanIngestionService:
    # pylint: disable=too-many-arguments,too-many-instance-attributes
    def __init__(
        self,
        *,
        config_port: ProvenanceConfigPort,
        cursor_port: CursorReadPort,
        task_queue_port: TaskQueuePort,
        repository: PlanRepository,
        settings: PlannerSettings | None = None,
        catalog: ErrorCatalog | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        settings = settings or PlannerSettings()
        # Caller entries override the default definitions.
        catalog = ErrorCatalog.default().merge(catalog)

        self._config_port = config_port
        self._cursor_port = cursor_port
        self._task_queue_port = task_queue_port
        self._repository = repository
        self._event_bus = event_bus or NullEventBus()

        self._resolver = WindowResolver(settings)
        self._expression_builder = PlanExpressionBuilder(catalog)
        self._validator = PlannerValidator(settings, catalog)
        self._assembler = PlanAssembler(SlicePlannerRegistry.default(settings))

    def ingest(self, request: PlanIngestionRequest) -> PlanIngestionResult:
        trigger = request.to_trigger_norm()
        provenance = trigger.provenance_code
        operation = trigger.operation_code.value
        now: datetime = request.triggered_at

        LOGGER.info(
            "plan-ingest start",
            extra={"provenance_code": provenance, "operation_code": operation, "triggered_at": now},
        )

        # ------------------------------------------------------------------
        # 1. Configuration snapshot and cursor watermark
        # ------------------------------------------------------------------

        snapshot = self._config_port.fetch_config(provenance, trigger.endpoint_name, operation)
        watermark = self._cursor_port.load_forward_watermark(provenance, operation)

        # ------------------------------------------------------------------
        # 2. Window and plan expression
        # ------------------------------------------------------------------

        window = self._resolver.resolve(trigger, snapshot, watermark, now)
        plan_expression = self._expression_builder.build(trigger, snapshot)

        # ------------------------------------------------------------------
        # 3. Validation (window, backpressure, capabilities)
        # ------------------------------------------------------------------

        queued = self._task_queue_port.count_queued_tasks(provenance, operation)
        try:
            self._validator.validate_before_assemble(trigger, snapshot, window, queued)
        except IngestConfigurationError as exc:
            self._event_bus.emit(
                PlanValidationFailedEvent(
                    schedule_instance_id=trigger.schedule_instance_id,
                    provenance_code=provenance,
                    operation_code=operation,
                    error_code=exc.code,
                    message=str(exc),
                )
            )
            raise

        # ------------------------------------------------------------------
        # 4. Assembly and dedup on plan key
        # ------------------------------------------------------------------

        assembly = self._assembler.assemble(trigger, window, snapshot, plan_expression)
        plan_key = assembly.plan.plan_key

        existing = self._repository.find_by_plan_key(plan_key)
        if existing is not None:
            return self._dedup_hit(trigger.schedule_instance_id, existing)

        # ------------------------------------------------------------------
        # 5. Persist plan, bind and persist slices, then tasks
        # ------------------------------------------------------------------

        plan, slices, tasks = self._persist(assembly)
        reused = sum(1 for t in tasks if t.plan_id != plan.id)

        self._event_bus.emit(
            PlanAssembledEvent(
                schedule_instance_id=trigger.schedule_instance_id,
                plan_key=plan.plan_key,
                provenance_code=provenance,
                operation_code=operation,
                status=assembly.status.value,
                plan_id=plan.id,
                slice_count=len(slices),
                task_count=len(tasks),
                window_from=format_instant(plan.window_from) if plan.window_from else None,
                window_to=format_instant(plan.window_to) if plan.window_to else None,
                reused_task_count=reused,
            )
        )
        LOGGER.info(
            "plan-ingest success",
            extra={
                "plan_id": plan.id,
                "plan_key": plan.plan_key,
                "slice_count": len(slices),
                "task_count": len(tasks),
                "reused_task_count": reused,
                "status": assembly.status.value,
            },
        )

        return PlanIngestionResult(
            schedule_instance_id=trigger.schedule_instance_id,
            plan_id=plan.id,
            plan_key=plan.plan_key,
            slice_ids=[s.id for s in slices],
            task_count=len(tasks),
            status=assembly.status.value,
            reused_task_count=reused,
            assembly=PlanAssembly(
                plan=plan, slices=tuple(slices), tasks=tuple(tasks), status=assembly.status
            ),
        )

    def _dedup_hit(self, schedule_instance_id: int, existing: Plan) -> PlanIngestionResult:
        slices = self._repository.find_slices(existing.id) if existing.id is not None else []
        tasks = self._repository.find_tasks(existing.id) if existing.id is not None else []

        LOGGER.info(
            "plan-ingest dedup hit",
            extra={"plan_key": existing.plan_key, "plan_id": existing.id},
        )
        self._event_bus.emit(
            PlanDedupHitEvent(
                schedule_instance_id=schedule_instance_id,
                plan_key=existing.plan_key,
                provenance_code=existing.provenance_code,
                operation_code=existing.operation_code,
                existing_plan_id=existing.id,
            )
        )
        return PlanIngestionResult(
            schedule_instance_id=schedule_instance_id,
            plan_id=existing.id,
            plan_key=existing.plan_key,
            slice_ids=[s.id for s in slices],
            task_count=len(tasks),
            status=existing.status.value,
            dedup_hit=True,
            assembly=PlanAssembly(
                plan=existing,
                slices=tuple(slices),
                tasks=tuple(tasks),
                status=AssemblyStatus.parse(existing.status.value),
            ),
        )

    def _persist(self, assembly: PlanAssembly) -> tuple[Plan, list[Slice], list[Task]]:
        # Checked before any write so a plan is never stored without its tasks.
        sequences = {s.sequence for s in assembly.slices}
        for task in assembly.tasks:
            if task.slice_sequence not in sequences:
                raise BindingError(
                    f"Task {task.idempotency_key} references unknown slice #{task.slice_sequence}"
                )

        plan = self._repository.save(assembly.plan)
        if plan.id is None:
            raise RuntimeError(f"Repository did not assign an id to plan {plan.plan_key}")

        if not assembly.slices:
            return plan, [], []

        for slice_ in assembly.slices:
            slice_.bind(plan.id)
        slices = self._repository.save_slices(assembly.slices)

        slice_ids = {s.sequence: s.id for s in slices}
        for task in assembly.tasks:
            task.bind(plan.id, slice_ids[task.slice_sequence])
        # Tasks whose idempotency key is already live come back as the live task.
        tasks = self._repository.save_tasks(assembly.tasks)

        return plan, slices, tasks
