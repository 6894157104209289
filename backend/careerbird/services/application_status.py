"""
Application status lifecycle.

Statuses are ordered by progress. Transitions only move forward, and the
terminal statuses (accepted, rejected) never change once set.
"""

from enum import Enum
from typing import Optional, Union

from careerbird.core.exceptions import InvalidTransitionError


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    SHORTLISTED = "shortlisted"
    INTERVIEW = "interview"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# accepted and rejected share the last position
_PROGRESS = {
    ApplicationStatus.DRAFT: 0,
    ApplicationStatus.SUBMITTED: 1,
    ApplicationStatus.UNDER_REVIEW: 2,
    ApplicationStatus.SHORTLISTED: 3,
    ApplicationStatus.INTERVIEW: 4,
    ApplicationStatus.ACCEPTED: 5,
    ApplicationStatus.REJECTED: 5,
}

TERMINAL_STATUSES = frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED})

# Statuses that count as "in review or later" for ranking
REVIEWED_STATUSES = frozenset(
    status for status, position in _PROGRESS.items()
    if position >= _PROGRESS[ApplicationStatus.UNDER_REVIEW]
)


def parse_status(value: Union[str, ApplicationStatus]) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in ApplicationStatus)
        raise InvalidTransitionError(f"Unknown application status '{value}'. Expected one of: {allowed}")


def progress_of(value: Union[str, ApplicationStatus]) -> int:
    return _PROGRESS[parse_status(value)]


def is_terminal(value: Union[str, ApplicationStatus]) -> bool:
    return parse_status(value) in TERMINAL_STATUSES


def is_reviewed(value: Optional[Union[str, ApplicationStatus]]) -> bool:
    if value is None:
        return False
    try:
        return ApplicationStatus(value) in REVIEWED_STATUSES
    except ValueError:
        return False


def check_transition(current: Union[str, ApplicationStatus], new: Union[str, ApplicationStatus]) -> ApplicationStatus:
    """
    Validate a status change and return the new status.

    Staying on the same non-terminal status is allowed (e.g. re-scoring).
    """
    current_status = parse_status(current)
    new_status = parse_status(new)

    if current_status in TERMINAL_STATUSES:
        if new_status == current_status:
            return new_status
        raise InvalidTransitionError(
            f"Application is already {current_status.value}; its status can no longer change"
        )

    if _PROGRESS[new_status] < _PROGRESS[current_status]:
        raise InvalidTransitionError(
            f"Cannot move application back from {current_status.value} to {new_status.value}"
        )

    return new_status
