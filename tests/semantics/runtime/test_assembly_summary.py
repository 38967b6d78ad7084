"""
Semantic test: assembly summary.

Invariant:
The summary lists one line per slice with its sub-window and task key, and
warns about failed plans, guard windows and unusually many slices.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ingest_planner.core.domain.types import (
    PlannerWindow,
    ProvenanceConfigSnapshot,
    ProvenanceInfo,
    TriggerNorm,
    WindowOffsetConfig,
)
from ingest_planner.planning.assembler import PlanAssembler
from ingest_planner.planning.expression import PlanExpressionBuilder
from ingest_planner.planning.summary import print_assembly_summary, summarize_assembly
from ingest_planner.planning.window import guard_window

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

SNAPSHOT = ProvenanceConfigSnapshot(
    provenance=ProvenanceInfo(code="PUBMED"),
    window_offset=WindowOffsetConfig(offset_type_code="DATE", offset_field_name="PDAT"),
)


def assemble(window: PlannerWindow, snapshot=SNAPSHOT):
    trigger = TriggerNorm(schedule_instance_id=1, provenance_code="PUBMED", operation_code="HARVEST")
    return PlanAssembler().assemble(
        trigger, window, snapshot, PlanExpressionBuilder().build(trigger, snapshot)
    )


def test_summary_lists_slices() -> None:
    assembly = assemble(PlannerWindow.of(T0, T0 + timedelta(hours=2)))

    summary = summarize_assembly(assembly=assembly)

    assert summary.status == "READY"
    assert summary.slice_count == summary.task_count == 2
    assert [(s.window_from, s.window_to) for s in summary.slices] == [
        ("2024-01-01T00:00:00Z", "2024-01-01T01:00:00Z"),
        ("2024-01-01T01:00:00Z", "2024-01-01T02:00:00Z"),
    ]
    assert summary.slices[0].idempotency_key == assembly.tasks[0].idempotency_key
    assert summary.warnings == []


def test_summary_warnings() -> None:
    failed = summarize_assembly(assembly=assemble(PlannerWindow.of(T0, T0 + timedelta(hours=1)), None))
    guard = summarize_assembly(assembly=assemble(guard_window(T0)))
    many = summarize_assembly(
        assembly=assemble(PlannerWindow.of(T0, T0 + timedelta(hours=5))), large_slice_count=3
    )

    assert any("FAILED" in w for w in failed.warnings)
    assert any("guard window" in w for w in guard.warnings)
    assert any("High number of slices (5)" in w for w in many.warnings)


def test_print_summary(capsys) -> None:
    print_assembly_summary(summarize_assembly(assembly=assemble(guard_window(T0))))

    out = capsys.readouterr().out
    assert "Status: READY" in out
    assert "Warnings:" in out
    assert "#1: [2024-01-01T00:00:00Z, 2024-01-01T00:00:01Z)" in out
