"""
Work order status transitions

    draft ──> pending ──> approved ──> in-progress ──> completed
      ^          │
      └──────────┘
    cancelled and on-hold are reachable from every non-terminal status.
    on-hold resumes to draft, pending, approved or in-progress.
    completed and cancelled are terminal.
"""
from .exceptions import InvalidTransition

TERMINAL_STATUSES = frozenset({"completed", "cancelled"})

TRANSITIONS = {
    "draft": frozenset({"pending", "cancelled", "on-hold"}),
    "pending": frozenset({"draft", "approved", "cancelled", "on-hold"}),
    "approved": frozenset({"in-progress", "cancelled", "on-hold"}),
    "in-progress": frozenset({"completed", "cancelled", "on-hold"}),
    "on-hold": frozenset({"draft", "pending", "approved", "in-progress", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}


def can_transition(current: str, requested: str) -> bool:
    """Self-transitions and unknown statuses are never legal"""
    return requested in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, requested: str) -> None:
    if not can_transition(current, requested):
        raise InvalidTransition(current=current, requested=requested)


def allowed_transitions(current: str) -> list:
    return sorted(TRANSITIONS.get(current, ()))
