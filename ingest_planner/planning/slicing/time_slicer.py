"""TIME strategy: tile the plan window into fixed-step sub-windows.

Each draft covers ``[cursor, min(cursor + step, to))`` and restricts the
plan expression with a CLOSED/OPEN datetime range on the source's time field,
so consecutive slices never overlap and together cover the window exactly.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta

from pydantic import TypeAdapter, ValidationError

from ingest_planner.core.domain.enums import OffsetType, SliceStrategyCode
from ingest_planner.core.domain.timeutil import format_instant
from ingest_planner.core.domain.types import ProvenanceConfigSnapshot
from ingest_planner.core.expr.ast import and_, range_datetime
from ingest_planner.core.expr.canonical import canonicalize
from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.slicing.base import SliceDraft, SlicePlanningContext

LOGGER = logging.getLogger(__name__)

_DURATION = TypeAdapter(timedelta)


def resolve_time_field(snapshot: ProvenanceConfigSnapshot | None) -> str | None:
    """Offset field for DATE offsets, else the default date field."""
    if snapshot is None or snapshot.window_offset is None:
        return None
    offset = snapshot.window_offset
    if OffsetType.matches(offset.offset_type_code, OffsetType.DATE) and offset.offset_field_name:
        return offset.offset_field_name
    return offset.default_date_field_name


def parse_step(raw: str | None, default: timedelta) -> timedelta:
    """Parse an ISO-8601 duration such as ``PT30M``; fall back to ``default``."""
    if raw is None or not raw.strip():
        return default
    try:
        step = _DURATION.validate_python(raw.strip())
    except ValidationError:
        LOGGER.warning("Invalid step %r, using default %s", raw, default)
        return default
    if step <= timedelta(0):
        LOGGER.warning("Non-positive step %r, using default %s", raw, default)
        return default
    return step


class TimeSlicePlanner:
    def __init__(self, settings: PlannerSettings | None = None) -> None:
        self._settings = settings or PlannerSettings()

    def code(self) -> str:
        return SliceStrategyCode.TIME.value

    def slice(self, context: SlicePlanningContext) -> list[SliceDraft]:
        trigger = context.trigger
        window = context.window

        if window is None or not window.is_bounded():
            LOGGER.warning(
                "Skip time slicing: planning window is missing",
                extra={"provenance_code": trigger.provenance_code, "window": window},
            )
            return []

        field = resolve_time_field(context.config_snapshot)
        if field is None:
            LOGGER.error(
                "Cannot resolve time field from provenance snapshot",
                extra={
                    "provenance_code": trigger.provenance_code,
                    "endpoint": trigger.endpoint_name,
                    "operation_code": trigger.operation_code.value,
                },
            )
            return []

        window_from, window_to = window.window_from, window.window_to
        if window_from >= window_to:
            LOGGER.warning(
                "Skip time slicing: window is not forward (%s >= %s)", window_from, window_to
            )
            return []

        step = parse_step(trigger.step, self._settings.default_step)

        expected = math.ceil((window_to - window_from) / step)
        if expected > self._settings.max_slice_count:
            LOGGER.error(
                "Refusing to plan %d time slices (limit %d)",
                expected,
                self._settings.max_slice_count,
                extra={
                    "provenance_code": trigger.provenance_code,
                    "operation_code": trigger.operation_code.value,
                    "step": str(step),
                },
            )
            return []

        timezone_name = self._timezone(context.config_snapshot)
        base_expr = context.plan_expression.expr

        drafts: list[SliceDraft] = []
        cursor = window_from
        sequence = 1
        while cursor < window_to:
            upper = min(cursor + step, window_to)

            spec = canonicalize(
                {
                    "strategy": self.code(),
                    "window": {
                        "from": format_instant(cursor),
                        "to": format_instant(upper),
                        "timezone": timezone_name,
                    },
                    "boundary": {"from": "CLOSED", "to": "OPEN"},
                }
            )
            expr = and_(
                [base_expr, range_datetime(field, cursor, upper, include_from=True, include_to=False)]
            )

            drafts.append(
                SliceDraft(
                    sequence=sequence,
                    signature_seed=spec.hash,
                    spec_json=spec.canonical_json,
                    expr=expr,
                    sub_from=cursor,
                    sub_to=upper,
                )
            )
            LOGGER.debug("Time slice #%d [%s, %s) %s", sequence, cursor, upper, spec.hash)

            cursor = upper
            sequence += 1

        return drafts

    @staticmethod
    def _timezone(snapshot: ProvenanceConfigSnapshot | None) -> str:
        if snapshot is None or not snapshot.timezone or not snapshot.timezone.strip():
            return "UTC"
        return snapshot.timezone.strip()
