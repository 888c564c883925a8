# Tour lifecycle rules, kept free of I/O so routes and tests share one definition.
from __future__ import annotations

from typing import Literal

TourStatus = Literal["scheduled", "confirmed", "completed", "cancelled"]

TOUR_STATUSES: tuple[str, ...] = ("scheduled", "confirmed", "completed", "cancelled")
INITIAL_STATUS: TourStatus = "scheduled"
TERMINAL_STATUSES = frozenset({"completed", "cancelled"})
UPCOMING_STATUSES = frozenset({"scheduled", "confirmed"})

# scheduled -> confirmed -> completed; cancelled from either open state
TRANSITIONS: dict[str, frozenset[str]] = {
    "scheduled": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

# Shown when a tour has no resolved agent
AGENT_PLACEHOLDER_NAME = "Agent TBA"
AGENT_PLACEHOLDER_PHONE = "+267 70 000 000"


class TourTransitionError(ValueError):
    """Raised when a tour cannot move from its current status to the requested one."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change tour status from '{current}' to '{target}'")


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def is_upcoming(status: str) -> bool:
    return status in UPCOMING_STATUSES


def is_past(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def transition(current: str, target: str) -> TourStatus:
    """Validate a status change and return the new status."""
    if target not in TOUR_STATUSES or not can_transition(current, target):
        raise TourTransitionError(current, target)
    return target  # type: ignore[return-value]


def matches_tab(status: str, tab: str) -> bool:
    """Tab filter used by the tour list: 'upcoming', 'past' or 'all'."""
    if tab == "upcoming":
        return is_upcoming(status)
    if tab == "past":
        return is_past(status)
    return True
