"""
Tests for leaderboard ranking.

Focus on tie-break order, determinism and what each requester may see.
"""

from datetime import timedelta

import pytest

from skillport_contests.exceptions import AuthorizationError
from skillport_contests.judges.scripted_judge import ScriptedJudge
from skillport_contests.models import (
    Contest,
    Participant,
    Role,
    Submission,
    SubmissionStatus,
    UserContext,
)
from skillport_contests.rankers.leaderboard_ranker import CachedRanker, ScoreRanker
from skillport_contests.service import ContestService

from .conftest import BASE_TIME, FakeClock

ACCEPTED = SubmissionStatus.ACCEPTED
WRONG = SubmissionStatus.WRONG_ANSWER


def scored_participant(user_id: str, points: list[int], joined_minute: int = 0, first_minute: int = 10) -> Participant:
    participant = Participant(user_id=user_id, joined_at=BASE_TIME + timedelta(minutes=joined_minute))
    for index, value in enumerate(points):
        participant.record(
            Submission(
                submission_id=f"{user_id}-{index}",
                problem_id=f"P{index}",
                code="x",
                language="python",
                status=ACCEPTED if value > 0 else WRONG,
                submitted_at=BASE_TIME + timedelta(minutes=first_minute + index),
                points_awarded=value,
            )
        )
    return participant


def contest_with(*participants: Participant) -> Contest:
    contest = Contest(
        contest_id="lb",
        title="Leaderboard",
        community_id="c1",
        created_by="admin-1",
        registration_start=BASE_TIME,
        registration_end=BASE_TIME + timedelta(hours=1),
        start_time=BASE_TIME + timedelta(hours=1),
        end_time=BASE_TIME + timedelta(hours=3),
    )
    for participant in participants:
        contest.participants[participant.user_id] = participant
    return contest


class TestScoreRanker:
    def test_fewer_submissions_wins_tie(self) -> None:
        # Arrange
        a = scored_participant("a", [100, 0, 100])
        b = scored_participant("b", [200])
        contest = contest_with(a, b)

        # Act
        standings = ScoreRanker().rank(contest)

        # Assert
        assert [(s.rank, s.participant.user_id) for s in standings] == [(1, "b"), (2, "a")]
        assert a.score == b.score == 200

    def test_earlier_score_wins_when_submission_counts_tie(self) -> None:
        late = scored_participant("late", [150], first_minute=30)
        early = scored_participant("early", [150], first_minute=5)

        standings = ScoreRanker().rank(contest_with(late, early))

        assert [s.participant.user_id for s in standings] == ["early", "late"]

    def test_penalties_do_not_count_as_reaching_the_score(self) -> None:
        """Ties on score and count go to whoever was last accepted earlier."""

        def penalized(user_id: str, accepted_minute: int, penalty_minute: int) -> Participant:
            participant = Participant(user_id=user_id, joined_at=BASE_TIME)
            for index, (status, points, minute) in enumerate(
                [(ACCEPTED, 100, accepted_minute), (WRONG, -10, penalty_minute)]
            ):
                participant.record(
                    Submission(
                        submission_id=f"{user_id}-{index}",
                        problem_id=f"P{index}",
                        code="x",
                        language="python",
                        status=status,
                        submitted_at=BASE_TIME + timedelta(minutes=minute),
                        points_awarded=points,
                    )
                )
            return participant

        # Arrange
        a = penalized("a", accepted_minute=10, penalty_minute=50)
        b = penalized("b", accepted_minute=20, penalty_minute=25)

        # Act
        standings = ScoreRanker().rank(contest_with(b, a))

        # Assert
        assert a.score == b.score == 90
        assert [s.participant.user_id for s in standings] == ["a", "b"]

    def test_zero_score_tie_prefers_fewer_submissions(self) -> None:
        zero_early = scored_participant("zero", [0], first_minute=1)
        nothing = scored_participant("nothing", [])

        standings = ScoreRanker().rank(contest_with(zero_early, nothing))

        assert [s.participant.user_id for s in standings] == ["nothing", "zero"]

    def test_join_time_then_user_id_break_remaining_ties(self) -> None:
        c = scored_participant("c", [], joined_minute=0)
        b = scored_participant("b", [], joined_minute=5)
        a = scored_participant("a", [], joined_minute=5)

        standings = ScoreRanker().rank(contest_with(b, c, a))

        assert [(s.rank, s.participant.user_id) for s in standings] == [(1, "c"), (2, "a"), (3, "b")]

    def test_ranking_is_deterministic(self) -> None:
        # Arrange
        participants = [scored_participant(f"u{i}", [100] * (i % 3)) for i in range(10)]
        forward = contest_with(*participants)
        backward = contest_with(*reversed(participants))

        # Act
        first = [s.participant.user_id for s in ScoreRanker().rank(forward)]
        second = [s.participant.user_id for s in ScoreRanker().rank(backward)]

        # Assert
        assert first == second
        assert len(set(first)) == 10

    def test_empty_contest(self) -> None:
        assert list(ScoreRanker().rank(contest_with())) == []


class TestCachedRanker:
    def test_cache_hit_for_same_version(self) -> None:
        ranker = CachedRanker(ScoreRanker())
        contest = contest_with(scored_participant("a", [100]))

        first = ranker.rank(contest)
        second = ranker.rank(contest)

        assert first is second
        assert (ranker.hits, ranker.misses) == (1, 1)

    def test_new_version_is_reranked(self) -> None:
        # Arrange
        ranker = CachedRanker(ScoreRanker())
        contest = contest_with(scored_participant("a", [100]))
        _ = ranker.rank(contest)

        # Act
        contest.participants["b"] = scored_participant("b", [300])
        contest.version += 1
        standings = ranker.rank(contest)

        # Assert
        assert [s.participant.user_id for s in standings] == ["b", "a"]
        assert ranker.misses == 2

    def test_evicts_oldest_contest(self) -> None:
        ranker = CachedRanker(ScoreRanker(), max_entries=1)
        first = contest_with()
        second = contest_with()
        second.contest_id = "other"

        _ = ranker.rank(first)
        _ = ranker.rank(second)
        _ = ranker.rank(first)

        assert ranker.misses == 3


class TestGetLeaderboard:
    def test_leaderboard_reflects_latest_submission(
        self,
        service: ContestService,
        active_contest: Contest,
        alice: UserContext,
        bob: UserContext,
        judge: ScriptedJudge,
        clock: FakeClock,
    ) -> None:
        # Arrange
        before = service.get_leaderboard(active_contest.contest_id, alice)
        judge.push(ACCEPTED)
        clock.advance(minutes=3)

        # Act
        service.submit_solution(active_contest.contest_id, bob, "P2", "solve()", "python")
        after = service.get_leaderboard(active_contest.contest_id, alice)

        # Assert
        assert [e.user_id for e in before] == ["alice", "bob"]
        assert [(e.rank, e.user_id, e.score, e.problems_solved) for e in after] == [
            (1, "bob", 200, 1),
            (2, "alice", 0, 0),
        ]

    def test_email_visible_only_to_self_and_admin(
        self,
        service: ContestService,
        active_contest: Contest,
        admin: UserContext,
        mentor: UserContext,
        alice: UserContext,
    ) -> None:
        # Act
        as_alice = {e.user_id: e.email for e in service.get_leaderboard(active_contest.contest_id, alice)}
        as_admin = {e.user_id: e.email for e in service.get_leaderboard(active_contest.contest_id, admin)}
        as_mentor = {e.user_id: e.email for e in service.get_leaderboard(active_contest.contest_id, mentor)}

        # Assert
        assert as_alice == {"alice": "alice@example.com", "bob": None}
        assert as_admin == {"alice": "alice@example.com", "bob": "bob@example.com"}
        assert as_mentor == {"alice": None, "bob": None}

    def test_submission_counts_and_display_names(
        self,
        service: ContestService,
        active_contest: Contest,
        alice: UserContext,
        judge: ScriptedJudge,
    ) -> None:
        judge.push(WRONG, ACCEPTED)
        service.submit_solution(active_contest.contest_id, alice, "P1", "a", "python")
        service.submit_solution(active_contest.contest_id, alice, "P1", "b", "python")

        top = service.get_leaderboard(active_contest.contest_id, alice)[0]

        assert (top.user_id, top.display_name, top.submission_count, top.score) == ("alice", "Alice", 2, 100)

    def test_other_community_cannot_read(
        self, service: ContestService, active_contest: Contest, outsider: UserContext
    ) -> None:
        with pytest.raises(AuthorizationError):
            _ = service.get_leaderboard(active_contest.contest_id, outsider)

    def test_leaderboard_stays_readable_after_end(
        self,
        service: ContestService,
        active_contest: Contest,
        clock: FakeClock,
    ) -> None:
        clock.advance(days=30)
        viewer = UserContext("zed", Role.STUDENT, "c1")

        entries = service.get_leaderboard(active_contest.contest_id, viewer)

        assert len(entries) == 2
