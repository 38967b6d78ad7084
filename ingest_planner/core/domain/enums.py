"""Code enumerations shared by the planning core.

Every enum is a ``str`` enum whose value is the persisted/wire code. Parsing
helpers accept the loose spellings that arrive from scheduler parameters and
registry snapshots (any case, surrounding whitespace).
"""

from __future__ import annotations

from enum import Enum


class _CodeEnum(str, Enum):
    """Base for code enums parsed case-insensitively."""

    @classmethod
    def parse(cls, raw: str):
        if raw is None:
            raise ValueError(f"{cls.__name__} code is required")
        normalized = str(raw).strip().upper()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unknown {cls.__name__} code: {raw!r}")

    @classmethod
    def matches(cls, raw: str | None, member: _CodeEnum) -> bool:
        """Return True if ``raw`` spells ``member`` (ignoring case and blanks)."""
        if raw is None:
            return False
        return str(raw).strip().upper() == member.value


class OperationCode(_CodeEnum):
    HARVEST = "HARVEST"
    BACKFILL = "BACKFILL"
    UPDATE = "UPDATE"


class Endpoint(_CodeEnum):
    SEARCH = "SEARCH"
    DETAIL = "DETAIL"
    METRICS = "METRICS"


class TriggerType(_CodeEnum):
    SCHEDULE = "SCHEDULE"
    MANUAL = "MANUAL"
    REPLAY = "REPLAY"


class Scheduler(_CodeEnum):
    XXL = "XXL"
    CRON = "CRON"
    MANUAL = "MANUAL"


class WindowMode(_CodeEnum):
    SLIDING = "SLIDING"
    CALENDAR = "CALENDAR"
    FULL = "FULL"


class OffsetType(_CodeEnum):
    DATE = "DATE"
    ID = "ID"
    COMPOSITE = "COMPOSITE"


class SliceStrategyCode(_CodeEnum):
    TIME = "TIME"
    SINGLE = "SINGLE"


class PlanStatus(_CodeEnum):
    DRAFT = "DRAFT"
    SLICING = "SLICING"
    READY = "READY"
    FAILED = "FAILED"


class AssemblyStatus(_CodeEnum):
    READY = "READY"
    FAILED = "FAILED"


class Priority(_CodeEnum):
    """Trigger priority; ``queue_value`` is the ordinal used by task queues."""

    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"

    @property
    def queue_value(self) -> int:
        return list(Priority).index(self)
