"""
Semantic test: pre-assembly validation.

Invariant:
Window, backpressure and capability problems reject the trigger before any
plan exists, each with its catalogued error code. Checks run in that order.
Configuration smells the planner can work around never reject.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ingest_planner.core.domain import errors
from ingest_planner.core.domain.errors import ErrorCatalog, ErrorDefinition, IngestConfigurationError
from ingest_planner.core.domain.types import (
    PlannerWindow,
    ProvenanceConfigSnapshot,
    ProvenanceInfo,
    TriggerNorm,
    WindowOffsetConfig,
)
from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.validator import PlannerValidator
from ingest_planner.planning.window import guard_window

UTC = timezone.utc
T0 = datetime(2024, 1, 1, tzinfo=UTC)
DAY = PlannerWindow.of(T0, T0 + timedelta(days=1))


def make_trigger(operation: str = "HARVEST", **overrides) -> TriggerNorm:
    return TriggerNorm(
        schedule_instance_id=1,
        provenance_code="PUBMED",
        endpoint="SEARCH",
        operation_code=operation,
        **overrides,
    )


def make_snapshot(**offset) -> ProvenanceConfigSnapshot:
    offset.setdefault("window_mode_code", "SLIDING")
    offset.setdefault("window_size_value", 24)
    return ProvenanceConfigSnapshot(
        provenance=ProvenanceInfo(code="PUBMED"),
        window_offset=WindowOffsetConfig(**offset),
    )


def rejected_code(trigger, snapshot, window, queued=0, validator=None) -> str | None:
    validator = validator or PlannerValidator()
    with pytest.raises(IngestConfigurationError) as excinfo:
        validator.validate_before_assemble(trigger, snapshot, window, queued)
    return excinfo.value.code


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "window",
    [
        None,
        PlannerWindow.full(),
        PlannerWindow.of(T0, None),
        PlannerWindow.of(T0 + timedelta(hours=1), T0),
        PlannerWindow.of(T0, T0),
        PlannerWindow.of(T0, T0 + timedelta(days=31)),
        guard_window(T0),
    ],
)
def test_bad_windows_are_rejected(window) -> None:
    assert rejected_code(make_trigger(), make_snapshot(), window) == errors.TIME_WINDOW_INVALID


def test_window_limits_follow_settings() -> None:
    validator = PlannerValidator(PlannerSettings(max_window=timedelta(hours=12)))

    assert rejected_code(make_trigger(), make_snapshot(), DAY, validator=validator) == (
        errors.TIME_WINDOW_INVALID
    )


def test_update_runs_without_window() -> None:
    PlannerValidator().validate_before_assemble(make_trigger("UPDATE"), make_snapshot(), None, 0)


# ---------------------------------------------------------------------------
# Backpressure
# ---------------------------------------------------------------------------

def test_queue_above_threshold_applies_backpressure() -> None:
    assert rejected_code(make_trigger(), make_snapshot(), DAY, queued=51) == errors.BACKPRESSURE_APPLIED


def test_queue_at_threshold_is_accepted() -> None:
    PlannerValidator().validate_before_assemble(make_trigger(), make_snapshot(), DAY, 50)


def test_window_is_checked_before_backpressure() -> None:
    assert rejected_code(make_trigger(), make_snapshot(), None, queued=500) == errors.TIME_WINDOW_INVALID


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("operation", ["HARVEST", "BACKFILL"])
def test_full_mode_needs_explicit_window(operation: str) -> None:
    snapshot = make_snapshot(window_mode_code="FULL")
    assert rejected_code(make_trigger(operation), snapshot, DAY) == errors.CAPABILITY_MISMATCH

    PlannerValidator().validate_before_assemble(
        make_trigger(operation, requested_window_from=T0), snapshot, DAY, 0
    )


def test_missing_offset_config_counts_as_full_mode() -> None:
    snapshot = ProvenanceConfigSnapshot(provenance=ProvenanceInfo(code="PUBMED"))
    assert rejected_code(make_trigger(), snapshot, DAY) == errors.CAPABILITY_MISMATCH


def test_update_is_exempt_from_full_mode_check() -> None:
    snapshot = make_snapshot(window_mode_code="FULL")
    PlannerValidator().validate_before_assemble(make_trigger("UPDATE"), snapshot, DAY, 0)


@pytest.mark.parametrize("offset_type", ["DATE", "composite"])
def test_date_offsets_need_a_date_field(offset_type: str) -> None:
    snapshot = make_snapshot(offset_type_code=offset_type)
    assert rejected_code(make_trigger(), snapshot, DAY) == errors.CAPABILITY_MISMATCH

    PlannerValidator().validate_before_assemble(
        make_trigger(), make_snapshot(offset_type_code=offset_type, default_date_field_name="EDAT"), DAY, 0
    )


def test_missing_snapshot_skips_capability_checks() -> None:
    PlannerValidator().validate_before_assemble(make_trigger(), None, DAY, 0)


def test_config_smells_only_warn(caplog) -> None:
    snapshot = make_snapshot(window_size_value=0, max_window_span_seconds=-1)

    with caplog.at_level("WARNING"):
        PlannerValidator().validate_before_assemble(make_trigger(), snapshot, DAY, 0)

    assert "Window size not configured" in caplog.text
    assert "Invalid max window span" in caplog.text


# ---------------------------------------------------------------------------
# Error payload
# ---------------------------------------------------------------------------

def test_error_carries_trigger_context_and_definition() -> None:
    with pytest.raises(IngestConfigurationError) as excinfo:
        PlannerValidator().validate_before_assemble(make_trigger(), make_snapshot(), DAY, 99)

    exc = excinfo.value
    assert exc.provenance_code == "PUBMED"
    assert exc.operation_code == "HARVEST"
    assert exc.endpoint == "SEARCH"
    assert exc.error.http_status == 429
    assert exc.error.category == "B"


def test_injected_catalog_overrides_definitions() -> None:
    custom = ErrorCatalog(
        entries={
            errors.TIME_WINDOW_INVALID: ErrorDefinition(
                errors.TIME_WINDOW_INVALID, "C", 400, "Bad window"
            )
        }
    )
    validator = PlannerValidator(catalog=ErrorCatalog.default().merge(custom))

    with pytest.raises(IngestConfigurationError) as excinfo:
        validator.validate_before_assemble(make_trigger(), make_snapshot(), None, 0)

    assert excinfo.value.error.title == "Bad window"
    assert excinfo.value.error.http_status == 400


def test_unknown_code_lookup_is_a_server_error() -> None:
    definition = ErrorCatalog.default().lookup("INGEST_0000")
    assert definition.http_status == 500
