from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from ingest_planner.core.domain.timeutil import format_instant
from ingest_planner.core.domain.types import PlannerWindow
from ingest_planner.planning.window import is_guard_window

if TYPE_CHECKING:
    from ingest_planner.core.domain.plan import PlanAssembly


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SliceSummary:
    sequence: int
    window_from: str | None
    window_to: str | None
    signature: str
    idempotency_key: str | None


@dataclass(frozen=True, slots=True)
class AssemblySummary:
    plan_key: str
    status: str
    slice_strategy: str
    window_from: str | None
    window_to: str | None
    slice_count: int
    task_count: int
    expr_hash: str
    slices: List[SliceSummary]
    warnings: List[str]


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_assembly(
    *,
    assembly: PlanAssembly,
    large_slice_count: int = 200,
) -> AssemblySummary:
    plan = assembly.plan
    warnings: list[str] = []

    if not assembly.is_ready():
        warnings.append("Plan FAILED: no slices were planned (check time field and window)")

    if is_guard_window(PlannerWindow.of(plan.window_from, plan.window_to)):
        warnings.append(
            "Window collapsed to the 1s guard window; the source may be fully caught up"
        )

    if len(assembly.slices) > large_slice_count:
        warnings.append(f"High number of slices ({len(assembly.slices)})")

    tasks_by_sequence = {t.slice_sequence: t for t in assembly.tasks}
    slices: list[SliceSummary] = []
    for slice_ in assembly.slices:
        task = tasks_by_sequence.get(slice_.sequence)
        sub_from = task.requested_window_from if task is not None else None
        slices.append(
            SliceSummary(
                sequence=slice_.sequence,
                window_from=format_instant(sub_from) if sub_from is not None else None,
                window_to=_slice_window_to(slice_.slice_spec_json),
                signature=slice_.slice_signature_hash,
                idempotency_key=task.idempotency_key if task is not None else None,
            )
        )

    return AssemblySummary(
        plan_key=plan.plan_key,
        status=assembly.status.value,
        slice_strategy=plan.slice_strategy,
        window_from=format_instant(plan.window_from) if plan.window_from else None,
        window_to=format_instant(plan.window_to) if plan.window_to else None,
        slice_count=len(assembly.slices),
        task_count=len(assembly.tasks),
        expr_hash=plan.expr_hash,
        slices=slices,
        warnings=warnings,
    )


def _slice_window_to(spec_json: str) -> str | None:
    # Only TIME specs carry a window.
    window = json.loads(spec_json).get("window")
    return window.get("to") if isinstance(window, dict) else None


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def print_assembly_summary(summary: AssemblySummary) -> None:
    print(f"Plan: {summary.plan_key}")
    print(f"Status: {summary.status}")
    print(f"Strategy: {summary.slice_strategy}")
    print(f"Window: [{summary.window_from}, {summary.window_to})")
    print(f"Slices: {summary.slice_count}")
    print(f"Tasks: {summary.task_count}")
    print(f"Expr hash: {summary.expr_hash}")
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()

    print("Slices:")
    for s in summary.slices:
        print(
            f"  - #{s.sequence}: "
            f"[{s.window_from}, {s.window_to}) | "
            f"sig {s.signature[:12]} | "
            f"task {s.idempotency_key}"
        )
