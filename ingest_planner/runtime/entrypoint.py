from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from ingest_planner.adapters.memory import (
    InMemoryPlanRepository,
    StaticConfigPort,
    StaticCursorPort,
    StaticTaskQueuePort,
)
from ingest_planner.core.domain import errors
from ingest_planner.core.domain.errors import (
    ErrorCatalog,
    IngestConfigurationError,
    IngestRequestError,
)
from ingest_planner.core.domain.timeutil import parse_instant
from ingest_planner.core.domain.types import PlanIngestionRequest, ProvenanceConfigSnapshot
from ingest_planner.core.events.event_bus import EventBus
from ingest_planner.core.events.sinks.file_recorder import FileRecorderSink
from ingest_planner.core.events.sinks.sink_logging import LoggingEventSink
from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.service import PlanIngestionResult, PlanIngestionService
from ingest_planner.planning.summary import print_assembly_summary, summarize_assembly
from ingest_planner.runtime.prometheus_metrics import PrometheusMetricsClient

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_USAGE = 2

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CliInputs:
    request: PlanIngestionRequest
    snapshot: ProvenanceConfigSnapshot | None
    watermark: datetime | None
    settings: PlannerSettings


def _load_json(path: Path, catalog: ErrorCatalog) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise IngestRequestError(
            f"{path} is not valid JSON: {exc}",
            error=catalog.lookup(errors.PARAMETER_FORMAT_ERROR),
        ) from exc
    if not isinstance(obj, dict):
        raise IngestRequestError(
            f"{path} must hold a JSON object, got {type(obj).__name__}",
            error=catalog.lookup(errors.INVALID_PARAMETER),
        )
    return obj


def _validation_error(source: str, exc: ValidationError, catalog: ErrorCatalog) -> IngestRequestError:
    missing = any(e["type"] == "missing" for e in exc.errors())
    code = errors.MISSING_REQUIRED_PARAMETER if missing else errors.INVALID_PARAMETER
    fields = ", ".join(".".join(str(p) for p in e["loc"]) or "<root>" for e in exc.errors())
    return IngestRequestError(f"invalid {source} ({fields})", error=catalog.lookup(code))


def load_inputs(args: argparse.Namespace, catalog: ErrorCatalog) -> CliInputs:
    """Read and validate every CLI input before any planning starts."""
    try:
        settings = PlannerSettings.from_json_obj(
            _load_json(args.settings, catalog) if args.settings is not None else None
        )
    except ValidationError as exc:
        raise _validation_error("settings", exc, catalog) from exc

    request_obj = _load_json(args.trigger, catalog)
    if args.now is not None:
        request_obj["triggered_at"] = args.now
    try:
        request = PlanIngestionRequest.from_json_obj(request_obj)
    except ValidationError as exc:
        raise _validation_error("trigger", exc, catalog) from exc

    snapshot = None
    if args.config is not None:
        try:
            snapshot = ProvenanceConfigSnapshot.from_json_obj(_load_json(args.config, catalog))
        except ValidationError as exc:
            raise _validation_error("config", exc, catalog) from exc

    try:
        watermark = parse_instant(args.watermark)
    except ValueError as exc:
        raise IngestRequestError(
            f"--watermark is not an ISO-8601 instant: {args.watermark!r}",
            error=catalog.lookup(errors.PARAMETER_FORMAT_ERROR),
        ) from exc

    return CliInputs(request=request, snapshot=snapshot, watermark=watermark, settings=settings)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ingest-planner",
        description="Plan one ingestion trigger and print the resulting plan/slices/tasks.",
    )

    parser.add_argument(
        "--trigger",
        type=Path,
        required=True,
        help="Path to the trigger JSON (provenance_code, operation_code, triggered_at, ...).",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the provenance configuration snapshot JSON.",
    )

    parser.add_argument(
        "--watermark",
        type=str,
        default=None,
        help="Cursor watermark as an ISO-8601 instant (e.g. 2024-01-01T00:00:00Z).",
    )

    parser.add_argument(
        "--now",
        type=str,
        default=None,
        help="Override the trigger's triggered_at (ISO-8601 instant).",
    )

    parser.add_argument(
        "--queued-tasks",
        type=int,
        default=0,
        help="Tasks already queued for this provenance/operation (backpressure input).",
    )

    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to planner settings JSON (defaults apply when omitted).",
    )

    parser.add_argument(
        "--emit",
        type=Path,
        default=None,
        help="Write the persisted plan assembly JSON to this path.",
    )

    parser.add_argument(
        "--events",
        type=Path,
        default=None,
        help="Append planning events as JSON lines to this path.",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    return parser


def plan_from_args(
    args: argparse.Namespace,
    event_bus: EventBus,
    catalog: ErrorCatalog,
) -> PlanIngestionResult:
    """Ingest the CLI trigger through the service over in-memory ports."""
    inputs = load_inputs(args, catalog)
    trigger = inputs.request.to_trigger_norm()
    provenance = trigger.provenance_code
    operation = trigger.operation_code.value

    service = PlanIngestionService(
        config_port=StaticConfigPort(
            {provenance: inputs.snapshot} if inputs.snapshot is not None else None
        ),
        cursor_port=StaticCursorPort(
            {(provenance, operation): inputs.watermark} if inputs.watermark is not None else None
        ),
        task_queue_port=StaticTaskQueuePort(args.queued_tasks),
        repository=InMemoryPlanRepository(),
        settings=inputs.settings,
        catalog=catalog,
        event_bus=event_bus,
    )
    return service.ingest(inputs.request)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    catalog = ErrorCatalog.default()
    event_bus = EventBus([LoggingEventSink(logging.getLogger("ingest_planner.events"))])
    if args.events is not None:
        event_bus.register(FileRecorderSink(args.events))

    try:
        result = plan_from_args(args, event_bus, catalog)
    except FileNotFoundError as exc:
        print(f"Error: file not found: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except IngestRequestError as exc:
        print(f"Invalid input [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except IngestConfigurationError as exc:
        print(f"Rejected [{exc.code}]: {exc}", file=sys.stderr)
        return EXIT_REJECTED
    finally:
        event_bus.close()

    assembly = result.assembly
    if assembly is None:
        raise RuntimeError(f"No plan assembly returned for {result.plan_key}")

    print_assembly_summary(summarize_assembly(assembly=assembly))

    if args.emit is not None:
        args.emit.parent.mkdir(parents=True, exist_ok=True)
        args.emit.write_text(
            json.dumps(assembly.to_json_obj(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        print()
        print(f"Emitted plan assembly to: {args.emit}")

    metrics = PrometheusMetricsClient()
    if metrics.is_enabled():
        metrics.record_assembly(assembly)
        metrics.push_all()

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
