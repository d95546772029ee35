"""
Abstract base classes defining the collaborators of the contest service.

All interfaces are synchronous; the service serializes writes per contest and
the storage round-trip is the only I/O.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from typing_extensions import TypedDict

from .models import Contest, ContestEvent, Problem, Standing, Verdict


class ProblemTestCaseDocument(TypedDict):
    """Stored shape of a problem test case."""

    input: str
    expected_output: str
    hidden: bool


class ProblemDocument(TypedDict):
    problem_id: str
    title: str
    description: str
    difficulty: str
    points: int
    test_cases: list[ProblemTestCaseDocument]


class RulesDocument(TypedDict):
    allowed_languages: list[str]
    scoring_system: str
    penalty_per_wrong_submission: int
    allow_partial_scoring: bool
    allow_clarifications: bool


class SubmissionDocument(TypedDict):
    submission_id: str
    problem_id: str
    code: str
    language: str
    status: str
    submitted_at: str  # ISO-8601, UTC
    points_awarded: int


class ParticipantDocument(TypedDict):
    user_id: str
    display_name: str
    email: str | None
    joined_at: str
    score: int
    submissions: list[SubmissionDocument]


class ClarificationDocument(TypedDict):
    clarification_id: str
    user_id: str
    question: str
    asked_at: str
    problem_id: str | None
    answer: str | None
    answered_by: str | None
    answered_at: str | None
    public: bool


class ContestDocument(TypedDict):
    """One denormalized record per contest: problems, participants and submissions embedded."""

    contest_id: str
    title: str
    description: str
    community_id: str
    created_by: str
    mentor_id: str | None
    batch: str | None
    status: str
    registration_start: str
    registration_end: str
    start_time: str
    end_time: str
    max_participants: int
    rules: RulesDocument
    problems: list[ProblemDocument]  # display order
    participants: list[ParticipantDocument]
    clarifications: list[ClarificationDocument]
    version: int
    created_at: str
    updated_at: str


class JudgePolicy(ABC):
    """Interface for deciding whether a submission solves a problem."""

    @abstractmethod
    def judge(self, problem: Problem, code: str, language: str) -> Verdict:
        """
        Judge one submission.

        May block. The service calls it outside the contest lock.

        Args:
            problem: Problem being attempted
            code: Submitted source code
            language: Submission language

        Returns:
            Verdict with the judged status
        """
        pass


class ContestStore(ABC):
    """Interface for persisting contest aggregates."""

    @abstractmethod
    def load(self, contest_id: str) -> Contest:
        """
        Load a fresh, independent copy of a contest.

        Raises:
            NotFoundError: If the contest does not exist
            TransientError: If storage timed out or failed
        """
        pass

    @abstractmethod
    def insert(self, contest: Contest) -> None:
        """
        Store a new contest at version 1 and set contest.version.

        Raises:
            ConflictError: If a contest with the same id exists
        """
        pass

    @abstractmethod
    def save(self, contest: Contest, expected_version: int) -> None:
        """
        Replace a stored contest if its version still equals expected_version.

        On success the stored and in-memory versions become expected_version + 1.

        Raises:
            VersionConflictError: If another writer saved first
            NotFoundError: If the contest does not exist
        """
        pass

    @abstractmethod
    def list_contests(self, community_id: str | None = None) -> Iterable[Contest]:
        """Return stored contests, optionally only those of one community."""
        pass


class LeaderboardRanker(ABC):
    """Interface for ordering a contest's participants."""

    @abstractmethod
    def rank(self, contest: Contest) -> Sequence[Standing]:
        """
        Rank all participants of a contest.

        Must be a pure function of the contest's participants and submissions
        and must never return two participants in varying order.
        """
        pass


class Notifier(ABC):
    """Interface for fire-and-forget contest notifications."""

    @abstractmethod
    def notify(self, event: ContestEvent) -> None:
        """Deliver an event. Failures are logged by the caller and ignored."""
        pass
