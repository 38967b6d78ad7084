"""
Semantic test: plan assembly.

Invariant:
A plan with at least one slice ends READY with exactly one task per slice,
in slice order. A plan without slices ends FAILED and is still returned.
Assembly is deterministic: identical inputs give identical keys, hashes
and JSON snapshots.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from ingest_planner.core.domain.enums import AssemblyStatus, PlanStatus
from ingest_planner.core.domain.plan import BindingState
from ingest_planner.core.domain.types import (
    PlannerWindow,
    ProvenanceConfigSnapshot,
    ProvenanceInfo,
    TriggerNorm,
    WindowOffsetConfig,
)
from ingest_planner.core.expr.canonical import canonicalize
from ingest_planner.planning.assembler import PlanAssembler, determine_slice_strategy
from ingest_planner.planning.expression import PlanExpressionBuilder

UTC = timezone.utc
T0 = datetime(2024, 1, 1, tzinfo=UTC)
WINDOW = PlannerWindow.of(T0, T0 + timedelta(hours=3))

PDAT_SNAPSHOT = ProvenanceConfigSnapshot(
    provenance=ProvenanceInfo(code="PUBMED", timezone_default="UTC"),
    window_offset=WindowOffsetConfig(
        window_mode_code="SLIDING",
        offset_type_code="DATE",
        offset_field_name="PDAT",
    ),
)

NO_FIELD_SNAPSHOT = ProvenanceConfigSnapshot(
    provenance=ProvenanceInfo(code="PUBMED"),
    window_offset=WindowOffsetConfig(window_mode_code="SLIDING"),
)


def make_trigger(operation: str = "HARVEST", **overrides) -> TriggerNorm:
    data = {
        "schedule_instance_id": 42,
        "provenance_code": "PUBMED",
        "endpoint": "SEARCH",
        "operation_code": operation,
        "step": "PT1H",
    }
    data.update(overrides)
    return TriggerNorm(**data)


def assemble(trigger: TriggerNorm, window: PlannerWindow = WINDOW, snapshot=PDAT_SNAPSHOT):
    plan_expression = PlanExpressionBuilder().build(trigger, snapshot)
    return PlanAssembler().assemble(trigger, window, snapshot, plan_expression)


# ---------------------------------------------------------------------------
# READY
# ---------------------------------------------------------------------------

def test_time_sliced_plan_is_ready_with_one_task_per_slice() -> None:
    assembly = assemble(make_trigger())

    assert assembly.status is AssemblyStatus.READY
    assert assembly.is_ready()
    assert assembly.plan.status is PlanStatus.READY
    assert len(assembly.slices) == 3
    assert [t.sequence for t in assembly.tasks] == [s.sequence for s in assembly.slices] == [1, 2, 3]


def test_plan_fields() -> None:
    plan = assemble(make_trigger()).plan

    assert plan.plan_key == "PUBMED:HARVEST:search:1704067200000-1704078000000"
    assert plan.schedule_instance_id == 42
    assert plan.endpoint == "SEARCH"
    assert plan.slice_strategy == "TIME"
    assert plan.slice_params_json == '{"strategy":"TIME"}'
    assert plan.window_from == WINDOW.window_from
    assert plan.window_to == WINDOW.window_to
    assert plan.config_snapshot_hash == canonicalize(PDAT_SNAPSHOT).hash
    assert plan.id is None


def test_task_fields_follow_their_slice() -> None:
    assembly = assemble(make_trigger())

    for slice_, task in zip(assembly.slices, assembly.tasks):
        material = f"PUBMED|HARVEST|{slice_.slice_signature_hash}".encode("utf-8")
        expected_key = base64.urlsafe_b64encode(hashlib.sha256(material).digest()).rstrip(b"=").decode()

        assert task.idempotency_key == expected_key
        assert task.params_json == f'{{"sliceNo":{slice_.sequence}}}'
        assert task.expr_hash == slice_.expr_hash
        assert task.schedule_instance_id == 42
        assert task.priority is None
        assert task.binding is BindingState.PENDING
        assert slice_.binding is BindingState.PENDING

    assert [t.requested_window_from for t in assembly.tasks] == [
        T0,
        T0 + timedelta(hours=1),
        T0 + timedelta(hours=2),
    ]


def test_slice_expressions_differ_from_plan_expression() -> None:
    assembly = assemble(make_trigger())

    assert len({s.expr_hash for s in assembly.slices}) == 3
    assert assembly.plan.expr_hash not in {s.expr_hash for s in assembly.slices}


@pytest.mark.parametrize(("priority", "expected"), [("HIGH", 0), ("NORMAL", 1), ("LOW", 2)])
def test_priority_is_the_queue_ordinal(priority: str, expected: int) -> None:
    assembly = assemble(make_trigger(priority=priority))
    assert {t.priority for t in assembly.tasks} == {expected}


def test_update_is_single_sliced() -> None:
    trigger = make_trigger("UPDATE", step=None)

    assembly = assemble(trigger)

    assert determine_slice_strategy(trigger).value == "SINGLE"
    assert assembly.is_ready()
    assert len(assembly.slices) == 1
    assert assembly.slices[0].expr_hash == assembly.plan.expr_hash
    assert assembly.tasks[0].requested_window_from == WINDOW.window_from
    assert assembly.plan.slice_params_json == '{"strategy":"SINGLE"}'


def test_assembly_is_deterministic() -> None:
    first = assemble(make_trigger()).to_json_obj()
    second = assemble(make_trigger()).to_json_obj()

    assert first == second


def test_missing_config_snapshot_hash_is_null() -> None:
    plan = assemble(make_trigger("UPDATE"), snapshot=None).plan

    assert plan.config_snapshot_json is None
    assert plan.config_snapshot_hash is None


# ---------------------------------------------------------------------------
# FAILED
# ---------------------------------------------------------------------------

def test_missing_time_field_yields_failed_plan() -> None:
    assembly = assemble(make_trigger(), snapshot=NO_FIELD_SNAPSHOT)

    assert assembly.status is AssemblyStatus.FAILED
    assert assembly.plan.status is PlanStatus.FAILED
    assert assembly.slices == ()
    assert assembly.tasks == ()
    assert assembly.plan.plan_key == "PUBMED:HARVEST:search:1704067200000-1704078000000"
