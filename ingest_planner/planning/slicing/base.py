"""Slice planning strategy protocol and shared records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from ingest_planner.core.domain.types import PlannerWindow, ProvenanceConfigSnapshot, TriggerNorm
from ingest_planner.core.expr.ast import Expr

if TYPE_CHECKING:
    from ingest_planner.planning.expression import PlanExpression


@dataclass(frozen=True, slots=True)
class SlicePlanningContext:
    trigger: TriggerNorm
    window: PlannerWindow | None
    plan_expression: PlanExpression
    config_snapshot: ProvenanceConfigSnapshot | None


@dataclass(frozen=True, slots=True)
class SliceDraft:
    """One planned slice before it becomes a ``Slice`` record.

    ``signature_seed`` is the hash of the canonical ``spec_json`` and is
    independent of the slice expression.
    """

    sequence: int
    signature_seed: str
    spec_json: str
    expr: Expr
    sub_from: datetime | None
    sub_to: datetime | None


class SlicePlanner(Protocol):
    def code(self) -> str:
        """Strategy code, e.g. ``TIME``."""

    def slice(self, context: SlicePlanningContext) -> list[SliceDraft]:
        """Return drafts ordered by sequence, or an empty list when the
        context cannot be sliced."""
