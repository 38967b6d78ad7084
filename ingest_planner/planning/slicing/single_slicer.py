"""SINGLE strategy: the whole plan scope as one slice."""

from __future__ import annotations

import logging

from ingest_planner.core.domain.enums import SliceStrategyCode
from ingest_planner.core.expr.canonical import canonicalize
from ingest_planner.planning.slicing.base import SliceDraft, SlicePlanningContext

LOGGER = logging.getLogger(__name__)


class SingleSlicePlanner:
    """Emits exactly one draft carrying the plan expression unchanged."""

    def code(self) -> str:
        return SliceStrategyCode.SINGLE.value

    def slice(self, context: SlicePlanningContext) -> list[SliceDraft]:
        spec = canonicalize({"strategy": self.code()})
        window = context.window

        LOGGER.debug(
            "Single slice planned",
            extra={"provenance_code": context.trigger.provenance_code, "signature": spec.hash},
        )

        return [
            SliceDraft(
                sequence=1,
                signature_seed=spec.hash,
                spec_json=spec.canonical_json,
                expr=context.plan_expression.expr,
                sub_from=window.window_from if window is not None else None,
                sub_to=window.window_to if window is not None else None,
            )
        ]
