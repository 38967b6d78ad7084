"""
Semantic test: command line planning run.

Invariant:
The CLI ingests one trigger from JSON files through the planning service,
prints a summary, writes the persisted plan assembly when asked and records
planning events. A rejected trigger exits with status 1 and its error code.
A missing, malformed or invalid input exits with 2 and a client error code.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import json
from pathlib import Path

import pytest

from ingest_planner.runtime.entrypoint import EXIT_OK, EXIT_REJECTED, EXIT_USAGE, main

TRIGGER = {
    "provenance_code": "PUBMED",
    "operation_code": "harvest",
    "endpoint": "search",
    "triggered_at": "2024-01-01T03:00:00Z",
    "step": "PT1H",
    "schedule_instance_id": 7,
}

CONFIG = {
    "provenance": {"code": "PUBMED", "timezone_default": "UTC"},
    "window_offset": {
        "window_mode_code": "SLIDING",
        "window_size_value": 3,
        "window_size_unit_code": "HOURS",
        "offset_type_code": "DATE",
        "offset_field_name": "PDAT",
    },
}


@pytest.fixture(autouse=True)
def _no_pushgateway(monkeypatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)


def write_json(path: Path, obj) -> Path:
    path.write_text(json.dumps(obj), encoding="utf-8")
    return path


def read_events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_plans_trigger_and_emits_assembly(tmp_path: Path, capsys) -> None:
    trigger = write_json(tmp_path / "trigger.json", TRIGGER)
    config = write_json(tmp_path / "config.json", CONFIG)
    emit = tmp_path / "out" / "assembly.json"
    events = tmp_path / "events.jsonl"

    code = main(
        [
            "--trigger", str(trigger),
            "--config", str(config),
            "--emit", str(emit),
            "--events", str(events),
        ]
    )

    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert "Plan: PUBMED:HARVEST:search:1704067200000-1704078000000" in out
    assert "Status: READY" in out
    assert "Slices: 3" in out
    assert "Emitted plan assembly to:" in out

    assembly = json.loads(emit.read_text(encoding="utf-8"))
    assert assembly["status"] == "READY"
    assert len(assembly["tasks"]) == 3
    assert {t["binding"] for t in assembly["tasks"]} == {"BOUND"}
    assert assembly["plan"]["id"] == 1
    assert [s["id"] for s in assembly["slices"]] == [2, 3, 4]
    assert [t["sliceId"] for t in assembly["tasks"]] == [2, 3, 4]

    recorded = read_events(events)
    assert [e["type"] for e in recorded] == ["PlanAssembledEvent"]
    assert recorded[0]["slice_count"] == 3
    assert recorded[0]["schedule_instance_id"] == 7


def test_watermark_and_now_overrides(tmp_path: Path, capsys) -> None:
    trigger = write_json(tmp_path / "trigger.json", TRIGGER)
    config = write_json(tmp_path / "config.json", CONFIG)

    code = main(
        [
            "--trigger", str(trigger),
            "--config", str(config),
            "--watermark", "2024-01-01T01:00:00Z",
            "--now", "2024-01-01T02:00:00Z",
        ]
    )

    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert "Slices: 1" in out
    assert "Window: [2024-01-01T01:00:00Z, 2024-01-01T02:00:00Z)" in out


def test_failed_plan_reports_warning(tmp_path: Path, capsys) -> None:
    config = dict(CONFIG, window_offset={"window_mode_code": "SLIDING", "window_size_value": 3})
    trigger = write_json(tmp_path / "trigger.json", TRIGGER)
    config_path = write_json(tmp_path / "config.json", config)

    code = main(["--trigger", str(trigger), "--config", str(config_path)])

    assert code == EXIT_OK
    out = capsys.readouterr().out
    assert "Status: FAILED" in out
    assert "Warnings:" in out


def test_rejected_trigger_exits_with_error_code(tmp_path: Path, capsys) -> None:
    config = dict(CONFIG, window_offset={"window_mode_code": "FULL"})
    trigger = write_json(tmp_path / "trigger.json", TRIGGER)
    config_path = write_json(tmp_path / "config.json", config)
    events = tmp_path / "events.jsonl"

    code = main(["--trigger", str(trigger), "--config", str(config_path), "--events", str(events)])

    assert code == EXIT_REJECTED
    assert "Rejected [INGEST_5006]" in capsys.readouterr().err
    recorded = read_events(events)
    assert recorded[0]["type"] == "PlanValidationFailedEvent"
    assert recorded[0]["error_code"] == "INGEST_5006"


def test_settings_file_is_applied(tmp_path: Path, capsys) -> None:
    trigger = write_json(tmp_path / "trigger.json", dict(TRIGGER, step=None))
    config = write_json(tmp_path / "config.json", CONFIG)
    settings = write_json(tmp_path / "settings.json", {"default_step": "PT30M"})

    code = main(["--trigger", str(trigger), "--config", str(config), "--settings", str(settings)])

    assert code == EXIT_OK
    assert "Slices: 6" in capsys.readouterr().out


def test_missing_trigger_file_exits_with_usage_error(tmp_path: Path, capsys) -> None:
    code = main(["--trigger", str(tmp_path / "missing.json")])

    assert code == EXIT_USAGE
    assert "file not found" in capsys.readouterr().err


def test_queued_tasks_apply_backpressure(tmp_path: Path, capsys) -> None:
    trigger = write_json(tmp_path / "trigger.json", TRIGGER)
    config = write_json(tmp_path / "config.json", CONFIG)

    code = main(["--trigger", str(trigger), "--config", str(config), "--queued-tasks", "51"])

    assert code == EXIT_REJECTED
    assert "Rejected [INGEST_5005]" in capsys.readouterr().err


def test_malformed_watermark_exits_with_usage_error(tmp_path: Path, capsys) -> None:
    trigger = write_json(tmp_path / "trigger.json", TRIGGER)

    code = main(["--trigger", str(trigger), "--watermark", "yesterday"])

    assert code == EXIT_USAGE
    err = capsys.readouterr().err
    assert "Invalid input [INGEST_4003]" in err
    assert "--watermark" in err


def test_trigger_without_required_field_exits_with_usage_error(tmp_path: Path, capsys) -> None:
    incomplete = {k: v for k, v in TRIGGER.items() if k != "triggered_at"}
    trigger = write_json(tmp_path / "trigger.json", incomplete)

    code = main(["--trigger", str(trigger)])

    assert code == EXIT_USAGE
    err = capsys.readouterr().err
    assert "Invalid input [INGEST_4002]" in err
    assert "triggered_at" in err


def test_trigger_with_unknown_field_exits_with_usage_error(tmp_path: Path, capsys) -> None:
    trigger = write_json(tmp_path / "trigger.json", dict(TRIGGER, surprise=True))

    code = main(["--trigger", str(trigger)])

    assert code == EXIT_USAGE
    assert "Invalid input [INGEST_4001]" in capsys.readouterr().err


def test_trigger_that_is_not_json_exits_with_usage_error(tmp_path: Path, capsys) -> None:
    trigger = tmp_path / "trigger.json"
    trigger.write_text("{not json", encoding="utf-8")

    code = main(["--trigger", str(trigger)])

    assert code == EXIT_USAGE
    assert "Invalid input [INGEST_4003]" in capsys.readouterr().err
