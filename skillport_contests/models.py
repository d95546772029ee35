"""
Core dataclasses for the contest subsystem.

Defines the Contest aggregate with the Problems, Participants, Submissions and
Clarifications it owns, the caller identity, and the result values returned by
the service.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .exceptions import NotFoundError, ValidationError


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ContestStatus(str, Enum):
    """Stored lifecycle state of a contest."""

    DRAFT = "draft"
    PUBLISHED = "published"
    REGISTRATION_OPEN = "registration_open"
    ACTIVE = "active"
    ENDED = "ended"


class Role(str, Enum):
    STUDENT = "student"
    MENTOR = "mentor"
    COMMUNITY_ADMIN = "community_admin"


class SubmissionStatus(str, Enum):
    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"


class ScoringSystem(str, Enum):
    ICPC = "icpc"
    IOI = "ioi"
    CUSTOM = "custom"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class ProblemTestCase:
    """One input/expected-output pair; hidden cases are never shown to students."""

    input: str
    expected_output: str
    hidden: bool = True


@dataclass(frozen=True)
class Problem:
    """A scored task within a contest."""

    problem_id: str
    title: str
    points: int = 100
    description: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    test_cases: tuple[ProblemTestCase, ...] = ()

    def __post_init__(self) -> None:
        """Validate problem data."""
        if not self.problem_id:
            raise ValidationError("problem_id cannot be empty")
        if not self.title:
            raise ValidationError(f"problem {self.problem_id} needs a title")
        if isinstance(self.points, bool) or self.points <= 0:
            raise ValidationError(
                f"problem {self.problem_id} points must be positive, got {self.points}"
            )

    def visible_test_cases(self) -> tuple[ProblemTestCase, ...]:
        return tuple(case for case in self.test_cases if not case.hidden)


@dataclass(frozen=True)
class ContestRules:
    """Per-contest rules; an empty allowed_languages means any language."""

    allowed_languages: tuple[str, ...] = ()
    scoring_system: ScoringSystem = ScoringSystem.ICPC
    penalty_per_wrong_submission: int = 0
    allow_partial_scoring: bool = False
    allow_clarifications: bool = True

    def __post_init__(self) -> None:
        if self.penalty_per_wrong_submission < 0:
            raise ValidationError(
                f"penalty_per_wrong_submission must be >= 0, got {self.penalty_per_wrong_submission}"
            )

    def allows_language(self, language: str) -> bool:
        if not self.allowed_languages:
            return True
        return language.lower() in {allowed.lower() for allowed in self.allowed_languages}

    @property
    def applies_penalty(self) -> bool:
        return not self.allow_partial_scoring and self.penalty_per_wrong_submission > 0


@dataclass(frozen=True)
class Submission:
    """One judged attempt; never mutated after creation."""

    submission_id: str
    problem_id: str
    code: str
    language: str
    status: SubmissionStatus
    submitted_at: datetime
    points_awarded: int


@dataclass
class Participant:
    """A user's enrollment in one contest."""

    user_id: str
    joined_at: datetime
    display_name: str = ""
    email: str | None = None
    score: int = 0
    submissions: list[Submission] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate that the score is exactly what the submissions awarded."""
        if not self.user_id:
            raise ValidationError("user_id cannot be empty")
        if self.score < 0:
            raise ValidationError(f"participant {self.user_id} has negative score")
        awarded = sum(sub.points_awarded for sub in self.submissions)
        if awarded != self.score:
            raise ValidationError(
                f"participant {self.user_id} score {self.score} does not match "
                f"submitted points {awarded}"
            )

    @property
    def submission_count(self) -> int:
        return len(self.submissions)

    def solved_problem_ids(self) -> set[str]:
        return {
            sub.problem_id
            for sub in self.submissions
            if sub.status is SubmissionStatus.ACCEPTED
        }

    def has_solved(self, problem_id: str) -> bool:
        return problem_id in self.solved_problem_ids()

    @property
    def last_scored_at(self) -> datetime | None:
        """When an accepted submission last awarded points, or None if none has."""
        for sub in reversed(self.submissions):
            if sub.status is SubmissionStatus.ACCEPTED and sub.points_awarded > 0:
                return sub.submitted_at
        return None

    def record(self, submission: Submission) -> None:
        """Append a submission and apply its points to the score."""
        new_score = self.score + submission.points_awarded
        if new_score < 0:
            raise ValidationError(
                f"submission {submission.submission_id} would make the score negative"
            )
        self.submissions.append(submission)
        self.score = new_score


@dataclass
class Clarification:
    """A participant question, optionally answered by a contest manager."""

    clarification_id: str
    user_id: str
    question: str
    asked_at: datetime
    problem_id: str | None = None
    answer: str | None = None
    answered_by: str | None = None
    answered_at: datetime | None = None
    public: bool = False

    @property
    def answered(self) -> bool:
        return self.answer is not None


@dataclass
class Contest:
    """
    Contest aggregate root.

    Owns its problems (keyed by id, displayed in problem_order), participants
    (keyed by user id) and clarifications. The version counter is bumped by the
    store on every successful save.
    """

    contest_id: str
    title: str
    community_id: str
    created_by: str
    registration_start: datetime
    registration_end: datetime
    start_time: datetime
    end_time: datetime
    description: str = ""
    status: ContestStatus = ContestStatus.DRAFT
    max_participants: int = 100
    batch: str | None = None
    mentor_id: str | None = None
    rules: ContestRules = field(default_factory=ContestRules)
    problems: dict[str, Problem] = field(default_factory=dict)
    problem_order: list[str] = field(default_factory=list)
    participants: dict[str, Participant] = field(default_factory=dict)
    clarifications: list[Clarification] = field(default_factory=list)
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.contest_id:
            raise ValidationError("contest_id cannot be empty")
        if self.max_participants < 1:
            raise ValidationError(
                f"max_participants must be at least 1, got {self.max_participants}"
            )
        if set(self.problem_order) != set(self.problems) or len(
            self.problem_order
        ) != len(self.problems):
            raise ValidationError("problem_order must list every problem exactly once")

    @property
    def duration_minutes(self) -> int:
        return round((self.end_time - self.start_time).total_seconds() / 60)

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    def ordered_problems(self) -> list[Problem]:
        return [self.problems[problem_id] for problem_id in self.problem_order]

    def set_problems(self, problems: Sequence[Problem]) -> None:
        """Replace the problem list, keeping the given display order."""
        by_id = dict[str, Problem]()
        for problem in problems:
            if problem.problem_id in by_id:
                raise ValidationError(f"duplicate problem id: {problem.problem_id}")
            by_id[problem.problem_id] = problem
        self.problems = by_id
        self.problem_order = [problem.problem_id for problem in problems]

    def get_problem(self, problem_id: str) -> Problem:
        try:
            return self.problems[problem_id]
        except KeyError:
            raise NotFoundError(
                f"problem {problem_id} not found in contest {self.contest_id}"
            ) from None

    def get_participant(self, user_id: str) -> Participant:
        try:
            return self.participants[user_id]
        except KeyError:
            raise NotFoundError(
                f"user {user_id} is not a participant in contest {self.contest_id}"
            ) from None

    def get_clarification(self, clarification_id: str) -> Clarification:
        for clarification in self.clarifications:
            if clarification.clarification_id == clarification_id:
                return clarification
        raise NotFoundError(f"clarification {clarification_id} not found")


@dataclass(frozen=True)
class UserContext:
    """Caller identity supplied by the authentication layer."""

    user_id: str
    role: Role
    community_id: str
    batch: str | None = None
    display_name: str = ""
    email: str | None = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationError("user_id cannot be empty")


@dataclass(frozen=True)
class Verdict:
    """Outcome returned by a judge policy."""

    status: SubmissionStatus
    judge_id: str = "unknown"
    detail: str = ""

    @property
    def accepted(self) -> bool:
        return self.status is SubmissionStatus.ACCEPTED


@dataclass(frozen=True)
class SubmissionResult:
    submission_id: str
    status: SubmissionStatus
    points_awarded: int
    current_score: int


@dataclass(frozen=True)
class Standing:
    """Ranker output: a participant and its 1-based position."""

    rank: int
    participant: Participant


@dataclass(frozen=True)
class RankedEntry:
    """Leaderboard row as shown to a requester."""

    rank: int
    user_id: str
    display_name: str
    score: int
    submission_count: int
    problems_solved: int
    email: str | None = None


@dataclass(frozen=True)
class ProblemStats:
    problem_id: str
    submissions: int
    accepted: int


@dataclass(frozen=True)
class ContestStats:
    total_participants: int
    total_submissions: int
    accepted_submissions: int
    average_score: float
    completion_rate: float
    problems: tuple[ProblemStats, ...]


@dataclass(frozen=True)
class ContestEvent:
    """Fire-and-forget notification about a contest change."""

    kind: str
    contest_id: str
    actor_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utc_now)
