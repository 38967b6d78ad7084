"""
Plan lifecycle state machine definitions.

This module defines the plan statuses and the allowed transitions between
them. It is passive: callers decide what to do with an invalid transition.
"""

from __future__ import annotations

from ingest_planner.core.domain.enums import PlanStatus

# Terminal plan statuses: set once per assembly call.
PLAN_TERMINAL_STATUSES: frozenset[PlanStatus] = frozenset(
    {
        PlanStatus.READY,
        PlanStatus.FAILED,
    }
)


# Allowed plan status transitions.
#
# Key   : previous status (or None for a plan that does not exist yet)
# Value : set of allowed next statuses
PLAN_ALLOWED_TRANSITIONS: dict[PlanStatus | None, frozenset[PlanStatus]] = {
    None: frozenset({PlanStatus.DRAFT}),

    PlanStatus.DRAFT: frozenset(
        {
            PlanStatus.SLICING,
            PlanStatus.FAILED,
        }
    ),

    PlanStatus.SLICING: frozenset(
        {
            PlanStatus.READY,
            PlanStatus.FAILED,
        }
    ),
}


def is_terminal_status(status: PlanStatus) -> bool:
    """Return True if the given status is terminal."""
    return status in PLAN_TERMINAL_STATUSES


def is_valid_transition(prev_status: PlanStatus | None, next_status: PlanStatus) -> bool:
    """Return True if the transition prev_status -> next_status is allowed."""
    allowed = PLAN_ALLOWED_TRANSITIONS.get(prev_status)
    if allowed is None:
        return False
    return next_status in allowed
