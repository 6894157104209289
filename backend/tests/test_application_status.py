"""
Tests for the application status lifecycle.
"""

import pytest

from careerbird.core.exceptions import InvalidTransitionError
from careerbird.services.application_status import (
    ApplicationStatus,
    check_transition,
    is_reviewed,
    is_terminal,
    progress_of,
)


@pytest.mark.parametrize("current, new", [
    ("draft", "submitted"),
    ("submitted", "under_review"),
    ("under_review", "interview"),
    ("shortlisted", "accepted"),
    ("submitted", "rejected"),
    ("interview", "interview"),
])
def test_forward_transitions_are_allowed(current, new):
    assert check_transition(current, new) == ApplicationStatus(new)


@pytest.mark.parametrize("current, new", [
    ("submitted", "draft"),
    ("interview", "under_review"),
])
def test_backward_transitions_are_rejected(current, new):
    with pytest.raises(InvalidTransitionError, match="back"):
        check_transition(current, new)


@pytest.mark.parametrize("terminal", ["accepted", "rejected"])
def test_terminal_statuses_are_immutable(terminal):
    other = "rejected" if terminal == "accepted" else "accepted"

    with pytest.raises(InvalidTransitionError, match="no longer change"):
        check_transition(terminal, other)
    with pytest.raises(InvalidTransitionError):
        check_transition(terminal, "under_review")

    # Re-saving the same decision is not a change
    assert check_transition(terminal, terminal) == ApplicationStatus(terminal)


def test_unknown_status_is_rejected():
    with pytest.raises(InvalidTransitionError, match="Unknown application status"):
        check_transition("draft", "waitlisted")


def test_progress_order():
    assert progress_of("draft") == 0
    assert progress_of(ApplicationStatus.INTERVIEW) == 4
    assert progress_of("accepted") == progress_of("rejected") == 5


def test_is_reviewed():
    assert not is_reviewed(None)
    assert not is_reviewed("draft")
    assert not is_reviewed("submitted")
    assert is_reviewed("under_review")
    assert is_reviewed("rejected")
    assert not is_reviewed("pending")


def test_is_terminal():
    assert is_terminal("accepted")
    assert not is_terminal("interview")
