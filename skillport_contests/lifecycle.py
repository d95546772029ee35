"""
Contest lifecycle rules.

draft -> published -> registration_open -> active -> ended. A contest whose end
time has passed is ended no matter what its stored status says; the explicit
end transition only exists for early termination.
"""

from datetime import datetime

from typing_extensions import assert_never

from .exceptions import InvalidStateError, ValidationError
from .models import Contest, ContestStatus

# Target status -> statuses it may be entered from by an explicit action
ALLOWED_SOURCES: dict[ContestStatus, frozenset[ContestStatus]] = {
    ContestStatus.DRAFT: frozenset(),
    ContestStatus.PUBLISHED: frozenset({ContestStatus.DRAFT}),
    ContestStatus.REGISTRATION_OPEN: frozenset({ContestStatus.PUBLISHED}),
    ContestStatus.ACTIVE: frozenset(
        {ContestStatus.PUBLISHED, ContestStatus.REGISTRATION_OPEN}
    ),
    ContestStatus.ENDED: frozenset({ContestStatus.ACTIVE}),
}

INITIAL_STATUSES = frozenset({ContestStatus.DRAFT, ContestStatus.PUBLISHED})


def validate_schedule(
    registration_start: datetime,
    registration_end: datetime,
    start_time: datetime,
    end_time: datetime,
) -> None:
    """Enforce registration_start < registration_end <= start_time < end_time."""
    if registration_start >= registration_end:
        raise ValidationError("registration end must be after registration start")
    if registration_end > start_time:
        raise ValidationError("contest start must not be before registration end")
    if start_time >= end_time:
        raise ValidationError("contest end must be after contest start")


def effective_status(contest: Contest, now: datetime) -> ContestStatus:
    """Stored status, except that any contest past its end time is ended."""
    if now > contest.end_time:
        return ContestStatus.ENDED
    return contest.status


def is_ended(contest: Contest, now: datetime) -> bool:
    return effective_status(contest, now) is ContestStatus.ENDED


def problems_locked(status: ContestStatus) -> bool:
    """Problems become immutable once a contest goes live."""
    match status:
        case ContestStatus.DRAFT | ContestStatus.PUBLISHED | ContestStatus.REGISTRATION_OPEN:
            return False
        case ContestStatus.ACTIVE | ContestStatus.ENDED:
            return True
        case _:
            assert_never(status)


def accepts_participants(status: ContestStatus) -> bool:
    match status:
        case ContestStatus.PUBLISHED | ContestStatus.REGISTRATION_OPEN | ContestStatus.ACTIVE:
            return True
        case ContestStatus.DRAFT | ContestStatus.ENDED:
            return False
        case _:
            assert_never(status)


def accepts_submissions(status: ContestStatus) -> bool:
    return status is ContestStatus.ACTIVE


def transition(contest: Contest, target: ContestStatus, now: datetime) -> None:
    """
    Move a contest to target via an explicit action.

    Raises:
        InvalidStateError: If the move is not allowed from the current status
    """
    current = effective_status(contest, now)
    if current is target:
        raise InvalidStateError(f"contest {contest.contest_id} is already {target.value}")
    if current is ContestStatus.ENDED:
        raise InvalidStateError(f"contest {contest.contest_id} has already ended")
    if current not in ALLOWED_SOURCES[target]:
        raise InvalidStateError(
            f"cannot move contest {contest.contest_id} from {current.value} to {target.value}"
        )
    contest.status = target
