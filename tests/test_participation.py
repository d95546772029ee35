"""
Tests for joining and leaving contests.
"""

from collections.abc import Callable

import pytest

from skillport_contests.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from skillport_contests.models import Contest, Role, UserContext
from skillport_contests.service import ContestService

from .conftest import FakeClock, RecordingNotifier


@pytest.fixture
def open_contest(
    service: ContestService, make_contest: Callable[..., Contest], admin: UserContext
) -> Contest:
    """Contest restricted to batch 2025 with registration open."""
    contest = make_contest(batch="2025", max_participants=3)
    service.publish_contest(contest.contest_id, admin)
    return service.open_registration(contest.contest_id, admin)


class TestJoinContest:
    def test_join_then_join_again_conflicts(
        self,
        service: ContestService,
        open_contest: Contest,
        alice: UserContext,
        clock: FakeClock,
    ) -> None:
        # Act
        participant = service.join_contest(open_contest.contest_id, alice)

        # Assert
        assert participant.score == 0
        assert participant.submissions == []
        assert participant.joined_at == clock.now
        assert participant.display_name == "Alice"
        with pytest.raises(ConflictError):
            _ = service.join_contest(open_contest.contest_id, alice)
        assert service.get_contest(open_contest.contest_id, alice).participant_count == 1

    def test_join_emits_event(
        self,
        service: ContestService,
        open_contest: Contest,
        alice: UserContext,
        notifier: RecordingNotifier,
    ) -> None:
        service.join_contest(open_contest.contest_id, alice)

        last = notifier.events[-1]
        assert (last.kind, last.contest_id, last.actor_id) == (
            "participant_joined",
            open_contest.contest_id,
            "alice",
        )

    def test_batch_mismatch_is_rejected(
        self, service: ContestService, open_contest: Contest, carol: UserContext
    ) -> None:
        with pytest.raises(AuthorizationError):
            _ = service.join_contest(open_contest.contest_id, carol)

    def test_other_community_is_rejected(
        self, service: ContestService, open_contest: Contest, outsider: UserContext
    ) -> None:
        with pytest.raises(AuthorizationError):
            _ = service.join_contest(open_contest.contest_id, outsider)

    def test_draft_contest_rejects_joins(
        self, service: ContestService, make_contest: Callable[..., Contest], alice: UserContext
    ) -> None:
        contest = make_contest()

        with pytest.raises(InvalidStateError, match="not open"):
            _ = service.join_contest(contest.contest_id, alice)

    def test_joins_allowed_while_active(
        self, service: ContestService, active_contest: Contest, carol: UserContext
    ) -> None:
        participant = service.join_contest(active_contest.contest_id, carol)

        assert participant.user_id == "carol"

    def test_ended_contest_rejects_joins(
        self,
        service: ContestService,
        open_contest: Contest,
        alice: UserContext,
        clock: FakeClock,
    ) -> None:
        clock.advance(days=5)

        with pytest.raises(InvalidStateError, match="ended"):
            _ = service.join_contest(open_contest.contest_id, alice)

    def test_full_contest_rejects_joins(
        self,
        service: ContestService,
        open_contest: Contest,
        alice: UserContext,
        bob: UserContext,
    ) -> None:
        # Arrange
        service.join_contest(open_contest.contest_id, alice)
        service.join_contest(open_contest.contest_id, bob)
        service.join_contest(
            open_contest.contest_id, UserContext("dave", Role.STUDENT, "c1", batch="2025")
        )

        # Act / Assert
        with pytest.raises(InvalidStateError, match="full"):
            _ = service.join_contest(
                open_contest.contest_id, UserContext("frank", Role.STUDENT, "c1", batch="2025")
            )
        assert service.get_contest(open_contest.contest_id, alice).participant_count == 3

    def test_unknown_contest(self, service: ContestService, alice: UserContext) -> None:
        with pytest.raises(NotFoundError):
            _ = service.join_contest("missing", alice)


class TestLeaveContest:
    def test_leave_before_submitting(
        self,
        service: ContestService,
        open_contest: Contest,
        alice: UserContext,
        notifier: RecordingNotifier,
    ) -> None:
        # Arrange
        service.join_contest(open_contest.contest_id, alice)

        # Act
        service.leave_contest(open_contest.contest_id, alice)

        # Assert
        assert service.get_contest(open_contest.contest_id, alice).participant_count == 0
        assert notifier.kinds()[-1] == "participant_left"

    def test_rejoin_after_leaving(
        self, service: ContestService, open_contest: Contest, alice: UserContext
    ) -> None:
        service.join_contest(open_contest.contest_id, alice)
        service.leave_contest(open_contest.contest_id, alice)

        participant = service.join_contest(open_contest.contest_id, alice)

        assert participant.score == 0

    def test_cannot_leave_after_submitting(
        self, service: ContestService, active_contest: Contest, alice: UserContext
    ) -> None:
        # Arrange
        service.submit_solution(active_contest.contest_id, alice, "P1", "print(1)", "python")

        # Act / Assert
        with pytest.raises(InvalidStateError, match="after submitting"):
            service.leave_contest(active_contest.contest_id, alice)

    def test_non_participant_cannot_leave(
        self, service: ContestService, open_contest: Contest, alice: UserContext
    ) -> None:
        with pytest.raises(NotFoundError):
            service.leave_contest(open_contest.contest_id, alice)

    def test_cannot_leave_ended_contest(
        self,
        service: ContestService,
        open_contest: Contest,
        alice: UserContext,
        clock: FakeClock,
    ) -> None:
        service.join_contest(open_contest.contest_id, alice)
        clock.advance(days=5)

        with pytest.raises(InvalidStateError):
            service.leave_contest(open_contest.contest_id, alice)
