"""Plan-level business expression.

The plan expression is the filter every slice starts from. Operation
specific constraints and caller-supplied conditions (``trigger_params["expr"]``,
in the expression JSON wire form) are combined with AND; no constraints
means ``Const TRUE``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from ingest_planner.core.domain import errors
from ingest_planner.core.domain.errors import ErrorCatalog, IngestConfigurationError
from ingest_planner.core.domain.types import ProvenanceConfigSnapshot, TriggerNorm
from ingest_planner.core.expr.ast import And, Expr, and_, const_true
from ingest_planner.core.expr.canonical import canonicalize_expr
from ingest_planner.core.expr.codec import ExprDecodeError, expr_from_json_obj

LOGGER = logging.getLogger(__name__)

EXTERNAL_EXPR_PARAM = "expr"


@dataclass(frozen=True, slots=True)
class PlanExpression:
    expr: Expr
    json_snapshot: str
    hash: str


class PlanExpressionBuilder:
    def __init__(self, catalog: ErrorCatalog | None = None) -> None:
        self._catalog = catalog or ErrorCatalog.default()

    def build(
        self,
        trigger: TriggerNorm,
        snapshot: ProvenanceConfigSnapshot | None,
    ) -> PlanExpression:
        expr = self._business_expression(trigger, snapshot)
        canonical = canonicalize_expr(expr)
        return PlanExpression(expr, canonical.canonical_json, canonical.hash)

    def _business_expression(
        self,
        trigger: TriggerNorm,
        snapshot: ProvenanceConfigSnapshot | None,
    ) -> Expr:
        constraints: list[Expr] = []
        if trigger.is_update():
            constraints.extend(self._update_constraints(trigger, snapshot))

        external = self._external_conditions(trigger)
        if isinstance(external, And):
            constraints.extend(external.children)
        elif external is not None:
            constraints.append(external)

        LOGGER.debug(
            "Plan expression built from %d constraint(s)",
            len(constraints),
            extra={"operation_code": trigger.operation_code.value},
        )

        if not constraints:
            return const_true()
        if len(constraints) == 1:
            return constraints[0]
        return and_(constraints)

    def _update_constraints(  # pylint: disable=unused-argument
        self,
        trigger: TriggerNorm,
        snapshot: ProvenanceConfigSnapshot | None,
    ) -> list[Expr]:
        # UPDATE re-reads known records; no extra filter is applied yet.
        return []

    def _external_conditions(self, trigger: TriggerNorm) -> Expr | None:
        raw: Any = trigger.trigger_params.get(EXTERNAL_EXPR_PARAM)
        if raw is None:
            return None
        try:
            if isinstance(raw, str):
                raw = json.loads(raw)
            return expr_from_json_obj(raw)
        except (ExprDecodeError, json.JSONDecodeError) as exc:
            raise IngestConfigurationError(
                f"Invalid external expression in trigger params: {exc}",
                provenance_code=trigger.provenance_code,
                operation_code=trigger.operation_code.value,
                endpoint=trigger.endpoint_name,
                error=self._catalog.lookup(errors.PARAMETER_FORMAT_ERROR),
            ) from exc
