"""Planning window resolution.

``WindowResolver.resolve`` is a pure function of (trigger, configuration
snapshot, cursor watermark, now). It never raises for an empty result:
a window that collapses to ``from >= to`` (or to less than one second) is
replaced by the minimal guard window ``[from, from + 1s)`` and left to the
validator.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ingest_planner.core.domain.timeutil import ensure_utc
from ingest_planner.core.domain.types import (
    PlannerWindow,
    ProvenanceConfigSnapshot,
    TriggerNorm,
    WindowOffsetConfig,
)
from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.window_support import (
    align_floor,
    compute_lagged_now,
    is_calendar_mode,
    max_instant,
    min_instant,
    resolve_lookback,
    resolve_window_size,
    resolve_zone,
)

LOGGER = logging.getLogger(__name__)

MIN_EFFECTIVE_WINDOW = timedelta(seconds=1)


class WindowResolver:
    """Resolves the ``[from, to)`` window a trigger should cover."""

    def __init__(self, settings: PlannerSettings | None = None) -> None:
        self._settings = settings or PlannerSettings()

    def resolve(
        self,
        trigger: TriggerNorm,
        snapshot: ProvenanceConfigSnapshot | None,
        cursor_watermark: datetime | None,
        now: datetime,
    ) -> PlannerWindow:
        offset = snapshot.window_offset if snapshot is not None else None
        tz_name = snapshot.timezone if snapshot is not None else None
        watermark = ensure_utc(cursor_watermark)
        now_safe = compute_lagged_now(ensure_utc(now), offset)

        if trigger.is_harvest():
            window = self._resolve_harvest(trigger, offset, watermark, now_safe, tz_name)
        elif trigger.is_backfill():
            # The forward (harvest) watermark is not part of the resolver's
            # inputs; only the backfill cursor is supplied.
            window = self._resolve_backfill(trigger, offset, watermark, None, now_safe, tz_name)
        elif trigger.is_update():
            window = self._resolve_update(trigger, offset, watermark, now_safe, tz_name)
        else:
            window = PlannerWindow.full()

        LOGGER.debug(
            "Resolved planning window",
            extra={
                "provenance_code": trigger.provenance_code,
                "operation_code": trigger.operation_code.value,
                "window_from": window.window_from,
                "window_to": window.window_to,
            },
        )
        return window

    # ------------------------------------------------------------------
    # HARVEST
    # ------------------------------------------------------------------

    def _resolve_harvest(
        self,
        trigger: TriggerNorm,
        offset: WindowOffsetConfig | None,
        watermark: datetime | None,
        now_safe: datetime,
        tz_name: str | None,
    ) -> PlannerWindow:
        user_from = trigger.requested_window_from
        window_size = resolve_window_size(offset, self._settings.default_window_size)
        lookback = resolve_lookback(offset)

        to_candidate = min_instant(trigger.requested_window_to, now_safe)

        if watermark is not None:
            from_candidate = max_instant(watermark - lookback, user_from)
        elif user_from is not None:
            from_candidate = user_from
        else:
            from_candidate = to_candidate - window_size

        return self._finish("HARVEST", offset, tz_name, from_candidate, to_candidate)

    # ------------------------------------------------------------------
    # BACKFILL
    # ------------------------------------------------------------------

    def _resolve_backfill(
        self,
        trigger: TriggerNorm,
        offset: WindowOffsetConfig | None,
        backfill_watermark: datetime | None,
        forward_watermark: datetime | None,
        now_safe: datetime,
        tz_name: str | None,
    ) -> PlannerWindow:
        user_from = trigger.requested_window_from
        window_size = resolve_window_size(offset, self._settings.default_window_size)

        upper = min_instant(trigger.requested_window_to, forward_watermark, now_safe)

        if backfill_watermark is not None:
            from_candidate = max_instant(backfill_watermark, user_from)
        elif user_from is not None:
            from_candidate = user_from
        else:
            from_candidate = upper - window_size

        if from_candidate > upper:
            from_candidate = upper

        return self._finish("BACKFILL", offset, tz_name, from_candidate, upper)

    # ------------------------------------------------------------------
    # UPDATE
    # ------------------------------------------------------------------

    def _resolve_update(
        self,
        trigger: TriggerNorm,
        offset: WindowOffsetConfig | None,
        watermark: datetime | None,
        now_safe: datetime,
        tz_name: str | None,
    ) -> PlannerWindow:
        user_from = trigger.requested_window_from
        user_to = trigger.requested_window_to
        window_size = resolve_window_size(offset, self._settings.default_window_size)
        # A user window makes the update time driven, whatever the offset type.
        if user_from is not None or user_to is not None:
            to_candidate = min_instant(user_to, now_safe)
            from_candidate = max_instant(watermark, user_from)
            if from_candidate is None:
                from_candidate = now_safe - window_size
        else:
            # ID driven: the most recent window ending at now_safe.
            to_candidate = now_safe
            from_candidate = now_safe - window_size

        return self._finish("UPDATE", offset, tz_name, from_candidate, to_candidate)

    # ------------------------------------------------------------------
    # Shared tail: calendar alignment and guard window
    # ------------------------------------------------------------------

    def _finish(
        self,
        operation: str,
        offset: WindowOffsetConfig | None,
        tz_name: str | None,
        window_from: datetime,
        window_to: datetime,
    ) -> PlannerWindow:
        if is_calendar_mode(offset):
            zone = resolve_zone(tz_name)
            window_from = align_floor(window_from, offset.calendar_align_to, zone)
            window_to = align_floor(window_to, offset.calendar_align_to, zone)

        if window_to <= window_from:
            LOGGER.debug(
                "%s window empty (%s >= %s), substituting guard window",
                operation,
                window_from,
                window_to,
            )
            return guard_window(window_from)
        if window_to - window_from < MIN_EFFECTIVE_WINDOW:
            return guard_window(window_from)
        return PlannerWindow.of(window_from, window_to)


def guard_window(window_from: datetime) -> PlannerWindow:
    """Return the minimal guard window ``[from, from + 1s)``."""
    return PlannerWindow.of(window_from, window_from + MIN_EFFECTIVE_WINDOW)


def is_guard_window(window: PlannerWindow) -> bool:
    return window.is_bounded() and window.duration() == MIN_EFFECTIVE_WINDOW
