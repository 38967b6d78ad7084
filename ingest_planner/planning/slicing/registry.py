"""Strategy code -> slice planner lookup."""

from __future__ import annotations

from typing import Iterable

from ingest_planner.planning.planner_config import PlannerSettings
from ingest_planner.planning.slicing.base import SlicePlanner
from ingest_planner.planning.slicing.single_slicer import SingleSlicePlanner
from ingest_planner.planning.slicing.time_slicer import TimeSlicePlanner


class SlicePlannerRegistry:
    def __init__(self, planners: Iterable[SlicePlanner]) -> None:
        self._planners: dict[str, SlicePlanner] = {}
        for planner in planners:
            code = planner.code().strip().upper()
            if code in self._planners:
                raise ValueError(f"Duplicate slice planner code: {code}")
            self._planners[code] = planner

    @classmethod
    def default(cls, settings: PlannerSettings | None = None) -> SlicePlannerRegistry:
        return cls([TimeSlicePlanner(settings), SingleSlicePlanner()])

    def get(self, code: str | None) -> SlicePlanner | None:
        """Return the planner for ``code``, or None when none is registered."""
        if code is None:
            return None
        return self._planners.get(code.strip().upper())

    def codes(self) -> list[str]:
        return sorted(self._planners)
