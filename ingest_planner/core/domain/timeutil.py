"""UTC instant helpers.

All timestamps inside the planner are timezone-aware UTC datetimes. Naive
datetimes are interpreted as UTC (explicit policy).
"""

from __future__ import annotations

from datetime import datetime, timezone


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (``None`` passes through)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(text: str | None) -> datetime | None:
    """Parse an ISO-8601 instant such as ``2024-01-01T00:00:00Z``."""
    if text is None or not str(text).strip():
        return None
    raw = str(text).strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(raw))


def format_instant(value: datetime) -> str:
    """Format an instant in its stable wire form.

    Seconds are always present; fractional seconds are emitted in
    millisecond groups only when non-zero (``...T00:00:00.250Z``).
    """
    utc = ensure_utc(value)
    base = utc.strftime("%Y-%m-%dT%H:%M:%S")
    micros = utc.microsecond
    if micros == 0:
        return base + "Z"
    if micros % 1000 == 0:
        return f"{base}.{micros // 1000:03d}Z"
    return f"{base}.{micros:06d}Z"


def epoch_millis(value: datetime) -> int:
    utc = ensure_utc(value)
    delta = utc - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
