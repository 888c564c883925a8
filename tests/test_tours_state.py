# Tour lifecycle rules (no HTTP, no database).
import pytest

from keyat.tours import (
    INITIAL_STATUS,
    TOUR_STATUSES,
    TourTransitionError,
    can_transition,
    is_past,
    is_terminal,
    is_upcoming,
    matches_tab,
    transition,
)


def test_initial_status_is_scheduled():
    assert INITIAL_STATUS == "scheduled"


@pytest.mark.parametrize(
    "current, target",
    [
        ("scheduled", "confirmed"),
        ("scheduled", "cancelled"),
        ("confirmed", "completed"),
        ("confirmed", "cancelled"),
    ],
)
def test_allowed_transitions(current: str, target: str):
    assert can_transition(current, target)
    assert transition(current, target) == target


@pytest.mark.parametrize(
    "current, target",
    [
        ("scheduled", "completed"),
        ("scheduled", "scheduled"),
        ("confirmed", "scheduled"),
        ("completed", "cancelled"),
        ("cancelled", "scheduled"),
        ("scheduled", "archived"),
        ("unknown", "confirmed"),
    ],
)
def test_rejected_transitions(current: str, target: str):
    assert not can_transition(current, target)
    with pytest.raises(TourTransitionError) as exc:
        transition(current, target)
    assert exc.value.current == current
    assert exc.value.target == target


# Terminal states have no way out
@pytest.mark.parametrize("status", TOUR_STATUSES)
def test_terminal_states_are_dead_ends(status: str):
    if is_terminal(status):
        assert not any(can_transition(status, t) for t in TOUR_STATUSES)
    else:
        assert any(can_transition(status, t) for t in TOUR_STATUSES)


# Every status is either upcoming or past, never both
@pytest.mark.parametrize("status", TOUR_STATUSES)
def test_upcoming_and_past_partition(status: str):
    assert is_upcoming(status) != is_past(status)


def test_matches_tab():
    assert matches_tab("scheduled", "upcoming")
    assert matches_tab("confirmed", "upcoming")
    assert not matches_tab("completed", "upcoming")
    assert matches_tab("cancelled", "past")
    assert not matches_tab("scheduled", "past")
    assert all(matches_tab(s, "all") for s in TOUR_STATUSES)
