"""Helpers shared by the window resolver.

Pure functions over instants and the window/offset policy: lag, duration
parsing, null-tolerant min/max, timezone resolution and calendar alignment.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ingest_planner.core.domain.enums import WindowMode
from ingest_planner.core.domain.types import WindowOffsetConfig

LOGGER = logging.getLogger(__name__)

_UNIT_FACTORIES = {
    "SECOND": lambda v: timedelta(seconds=v),
    "SECONDS": lambda v: timedelta(seconds=v),
    "MINUTE": lambda v: timedelta(minutes=v),
    "MINUTES": lambda v: timedelta(minutes=v),
    "HOUR": lambda v: timedelta(hours=v),
    "HOURS": lambda v: timedelta(hours=v),
    "DAY": lambda v: timedelta(days=v),
    "DAYS": lambda v: timedelta(days=v),
}


def compute_lagged_now(now: datetime, offset: WindowOffsetConfig | None) -> datetime:
    """Return ``now - watermark_lag``; a missing or negative lag counts as zero."""
    if offset is None or offset.watermark_lag_seconds is None:
        return now
    return now - timedelta(seconds=max(0, offset.watermark_lag_seconds))


def resolve_duration(value: int | None, unit_code: str | None, default: timedelta) -> timedelta:
    """Turn a (value, unit) pair into a duration.

    A missing value yields ``default``. A missing unit means hours. Unknown
    units are read as minutes and logged.
    """
    if value is None:
        return default
    unit = (unit_code or "HOURS").strip().upper()
    factory = _UNIT_FACTORIES.get(unit)
    if factory is None:
        LOGGER.warning(
            "Unknown duration unit %r, defaulting to MINUTES",
            unit_code,
            extra={"unit_code": unit_code, "value": value},
        )
        return timedelta(minutes=value)
    return factory(value)


def resolve_window_size(offset: WindowOffsetConfig | None, default: timedelta) -> timedelta:
    if offset is None:
        return default
    return resolve_duration(offset.window_size_value, offset.window_size_unit_code, default)


def resolve_lookback(offset: WindowOffsetConfig | None) -> timedelta:
    if offset is None:
        return timedelta(0)
    return resolve_duration(offset.lookback_value, offset.lookback_unit_code, timedelta(0))


def min_instant(*instants: datetime | None) -> datetime | None:
    present = [i for i in instants if i is not None]
    return min(present) if present else None


def max_instant(*instants: datetime | None) -> datetime | None:
    present = [i for i in instants if i is not None]
    return max(present) if present else None


def resolve_zone(timezone_id: str | None):
    """Return the named zone; blank or unknown ids resolve to UTC."""
    if timezone_id is None or not timezone_id.strip():
        return timezone.utc
    try:
        return ZoneInfo(timezone_id.strip())
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.debug("Unknown timezone %r, using UTC", timezone_id)
        return timezone.utc


def is_calendar_mode(offset: WindowOffsetConfig | None) -> bool:
    return offset is not None and WindowMode.matches(offset.window_mode_code, WindowMode.CALENDAR)


def align_floor(instant: datetime, align_to: str | None, zone) -> datetime:
    """Floor ``instant`` to the start of its HOUR/DAY/WEEK/MONTH in ``zone``.

    Weeks start on Monday. Unknown anchors align to the hour.
    """
    local = instant.astimezone(zone)
    anchor = (align_to or "HOUR").strip().upper()

    if anchor in ("DAY", "DAYS"):
        aligned = datetime.combine(local.date(), time.min)
    elif anchor in ("WEEK", "WEEKS"):
        aligned = datetime.combine(local.date() - timedelta(days=local.weekday()), time.min)
    elif anchor in ("MONTH", "MONTHS"):
        aligned = datetime.combine(local.date().replace(day=1), time.min)
    else:
        aligned = local.replace(minute=0, second=0, microsecond=0, tzinfo=None)

    return aligned.replace(tzinfo=zone).astimezone(timezone.utc)
