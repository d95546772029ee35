"""
Interface boundary for route handlers and the CLI.

Every ContestAPI method returns an ApiResult instead of raising. Business
errors keep their kind and message; anything unexpected is logged with its
traceback and reported as an internal error.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import ContestError, ErrorKind
from .logging_config import get_logger
from .models import (
    Clarification,
    Contest,
    ContestStats,
    Participant,
    Problem,
    RankedEntry,
    SubmissionResult,
    UserContext,
)
from .permissions import is_contest_manager
from .service import ContestService

# Module-level logger
logger = get_logger("contest_api")


@dataclass(frozen=True)
class ApiError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class ApiResult:
    """Success with data, or failure with an ApiError."""

    ok: bool
    data: Any = None
    error: ApiError | None = None

    @classmethod
    def success(cls, data: Any = None) -> "ApiResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "ApiResult":
        return cls(ok=False, error=ApiError(kind=kind, message=message))

    def to_dict(self) -> dict[str, Any]:
        """Response body in the route handlers' {"success": ...} shape."""
        if self.ok:
            return {"success": True, "data": self.data}
        assert self.error is not None
        return {
            "success": False,
            "error": {"kind": self.error.kind.value, "message": self.error.message},
        }


# ----------------------------------------------------------------------
# Payload converters
# ----------------------------------------------------------------------


def problem_payload(problem: Problem, include_hidden: bool) -> dict[str, Any]:
    cases = problem.test_cases if include_hidden else problem.visible_test_cases()
    return {
        "problem_id": problem.problem_id,
        "title": problem.title,
        "description": problem.description,
        "difficulty": problem.difficulty.value,
        "points": problem.points,
        "test_cases": [
            {"input": case.input, "expected_output": case.expected_output, "hidden": case.hidden}
            for case in cases
        ],
    }


def contest_payload(contest: Contest, requester: UserContext, service: ContestService) -> dict[str, Any]:
    """Contest summary; hidden test cases only for the contest's managers."""
    include_hidden = is_contest_manager(requester, contest)
    rules = contest.rules
    return {
        "contest_id": contest.contest_id,
        "title": contest.title,
        "description": contest.description,
        "community_id": contest.community_id,
        "created_by": contest.created_by,
        "mentor_id": contest.mentor_id,
        "batch": contest.batch,
        "status": service.effective_status(contest).value,
        "registration_start": contest.registration_start.isoformat(),
        "registration_end": contest.registration_end.isoformat(),
        "start_time": contest.start_time.isoformat(),
        "end_time": contest.end_time.isoformat(),
        "duration_minutes": contest.duration_minutes,
        "max_participants": contest.max_participants,
        "participant_count": contest.participant_count,
        "rules": {
            "allowed_languages": list(rules.allowed_languages),
            "scoring_system": rules.scoring_system.value,
            "penalty_per_wrong_submission": rules.penalty_per_wrong_submission,
            "allow_partial_scoring": rules.allow_partial_scoring,
            "allow_clarifications": rules.allow_clarifications,
        },
        "problems": [problem_payload(p, include_hidden) for p in contest.ordered_problems()],
        "version": contest.version,
    }


def participant_payload(participant: Participant) -> dict[str, Any]:
    return {
        "user_id": participant.user_id,
        "display_name": participant.display_name,
        "joined_at": participant.joined_at.isoformat(),
        "score": participant.score,
    }


def submission_result_payload(result: SubmissionResult) -> dict[str, Any]:
    return {
        "submission_id": result.submission_id,
        "status": result.status.value,
        "points_awarded": result.points_awarded,
        "current_score": result.current_score,
    }


def ranked_entry_payload(entry: RankedEntry) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "rank": entry.rank,
        "user_id": entry.user_id,
        "display_name": entry.display_name,
        "score": entry.score,
        "submission_count": entry.submission_count,
        "problems_solved": entry.problems_solved,
    }
    if entry.email is not None:
        payload["email"] = entry.email
    return payload


def clarification_payload(clarification: Clarification) -> dict[str, Any]:
    return {
        "clarification_id": clarification.clarification_id,
        "user_id": clarification.user_id,
        "problem_id": clarification.problem_id,
        "question": clarification.question,
        "asked_at": clarification.asked_at.isoformat(),
        "answer": clarification.answer,
        "answered_by": clarification.answered_by,
        "answered_at": clarification.answered_at.isoformat() if clarification.answered_at else None,
        "public": clarification.public,
    }


def stats_payload(stats: ContestStats) -> dict[str, Any]:
    return {
        "total_participants": stats.total_participants,
        "total_submissions": stats.total_submissions,
        "accepted_submissions": stats.accepted_submissions,
        "average_score": round(stats.average_score, 2),
        "completion_rate": round(stats.completion_rate, 2),
        "problems": [
            {"problem_id": p.problem_id, "submissions": p.submissions, "accepted": p.accepted}
            for p in stats.problems
        ],
    }


class ContestAPI:
    """Result-returning facade over ContestService."""

    def __init__(self, service: ContestService):
        self.service: ContestService = service

    def _call(self, operation: str, fn: Callable[[], Any]) -> ApiResult:
        try:
            return ApiResult.success(fn())
        except ContestError as e:
            logger.info(f"{operation} rejected ({e.kind.value}): {e.message}")
            return ApiResult.failure(e.kind, e.message)
        except Exception:
            logger.exception(f"Unexpected error in {operation}")
            return ApiResult.failure(ErrorKind.INTERNAL, "internal error")

    def create_contest(self, spec: Mapping[str, Any], actor: UserContext) -> ApiResult:
        return self._call(
            "create_contest",
            lambda: contest_payload(self.service.create_contest(spec, actor), actor, self.service),
        )

    def publish_contest(self, contest_id: str, actor: UserContext) -> ApiResult:
        return self._call(
            "publish_contest",
            lambda: contest_payload(self.service.publish_contest(contest_id, actor), actor, self.service),
        )

    def open_registration(self, contest_id: str, actor: UserContext) -> ApiResult:
        return self._call(
            "open_registration",
            lambda: contest_payload(self.service.open_registration(contest_id, actor), actor, self.service),
        )

    def start_contest(self, contest_id: str, actor: UserContext) -> ApiResult:
        return self._call(
            "start_contest",
            lambda: contest_payload(self.service.start_contest(contest_id, actor), actor, self.service),
        )

    def end_contest(self, contest_id: str, actor: UserContext) -> ApiResult:
        return self._call(
            "end_contest",
            lambda: contest_payload(self.service.end_contest(contest_id, actor), actor, self.service),
        )

    def update_contest(self, contest_id: str, patch: Mapping[str, Any], actor: UserContext) -> ApiResult:
        return self._call(
            "update_contest",
            lambda: contest_payload(
                self.service.update_contest(contest_id, patch, actor), actor, self.service
            ),
        )

    def get_contest(self, contest_id: str, requester: UserContext) -> ApiResult:
        return self._call(
            "get_contest",
            lambda: contest_payload(self.service.get_contest(contest_id, requester), requester, self.service),
        )

    def list_contests(self, requester: UserContext) -> ApiResult:
        return self._call(
            "list_contests",
            lambda: [
                contest_payload(contest, requester, self.service)
                for contest in self.service.list_contests(requester)
            ],
        )

    def join_contest(self, contest_id: str, user: UserContext) -> ApiResult:
        return self._call(
            "join_contest",
            lambda: participant_payload(self.service.join_contest(contest_id, user)),
        )

    def leave_contest(self, contest_id: str, user: UserContext) -> ApiResult:
        def leave() -> dict[str, Any]:
            self.service.leave_contest(contest_id, user)
            return {"contest_id": contest_id, "user_id": user.user_id}

        return self._call("leave_contest", leave)

    def submit_solution(
        self, contest_id: str, user: UserContext, problem_id: str, code: str, language: str
    ) -> ApiResult:
        return self._call(
            "submit_solution",
            lambda: submission_result_payload(
                self.service.submit_solution(contest_id, user, problem_id, code, language)
            ),
        )

    def get_leaderboard(self, contest_id: str, requester: UserContext) -> ApiResult:
        return self._call(
            "get_leaderboard",
            lambda: [
                ranked_entry_payload(entry)
                for entry in self.service.get_leaderboard(contest_id, requester)
            ],
        )

    def contest_stats(self, contest_id: str, actor: UserContext) -> ApiResult:
        return self._call(
            "contest_stats",
            lambda: stats_payload(self.service.contest_stats(contest_id, actor)),
        )

    def ask_clarification(
        self, contest_id: str, user: UserContext, question: str, problem_id: str | None = None
    ) -> ApiResult:
        return self._call(
            "ask_clarification",
            lambda: clarification_payload(
                self.service.ask_clarification(contest_id, user, question, problem_id)
            ),
        )

    def answer_clarification(
        self,
        contest_id: str,
        actor: UserContext,
        clarification_id: str,
        answer: str,
        public: bool = False,
    ) -> ApiResult:
        return self._call(
            "answer_clarification",
            lambda: clarification_payload(
                self.service.answer_clarification(contest_id, actor, clarification_id, answer, public)
            ),
        )

    def list_clarifications(self, contest_id: str, requester: UserContext) -> ApiResult:
        return self._call(
            "list_clarifications",
            lambda: [
                clarification_payload(c)
                for c in self.service.list_clarifications(contest_id, requester)
            ],
        )
