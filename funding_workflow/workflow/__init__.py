"""Project lifecycle rules."""

from .transitions import (
    ALLOWED_TRANSITIONS,
    EVALUABLE_STATUSES,
    PIPELINE_STATUSES,
    TERMINAL_STATUSES,
    can_transition,
    ensure_owner,
    ensure_staff,
    ensure_transition,
    financing_blockers,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "EVALUABLE_STATUSES",
    "PIPELINE_STATUSES",
    "TERMINAL_STATUSES",
    "can_transition",
    "ensure_owner",
    "ensure_staff",
    "ensure_transition",
    "financing_blockers",
]
