"""
Contest service.

Coordinates store, judge, ranker and notifier components. Every write to a
contest runs under that contest's lock and saves with a version check; a lost
race reloads the contest and re-applies the change. Reads take no lock.
"""

import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from loguru import Logger

from .exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    TransientError,
    ValidationError,
    VersionConflictError,
)
from .interfaces import ContestStore, JudgePolicy, LeaderboardRanker, Notifier
from .judges.random_stub_judge import RandomStubJudge
from .lifecycle import (
    INITIAL_STATUSES,
    accepts_participants,
    accepts_submissions,
    effective_status,
    is_ended,
    problems_locked,
    transition,
    validate_schedule,
)
from .logging_config import get_logger
from .models import (
    Clarification,
    Contest,
    ContestEvent,
    ContestStats,
    ContestStatus,
    Participant,
    Problem,
    ProblemStats,
    RankedEntry,
    Role,
    Submission,
    SubmissionResult,
    SubmissionStatus,
    UserContext,
    ensure_utc,
    new_id,
    utc_now,
)
from .notifiers.log_notifier import LogNotifier
from .permissions import (
    in_batch,
    is_community_admin,
    is_contest_manager,
    may_see_contact,
    require_community_admin,
    require_eligible,
    require_manager,
    require_member,
    require_viewer,
)
from .rankers.leaderboard_ranker import CachedRanker
from .schemas import ContestPatch, ContestSpec, build_problems, parse_model
from .scoring import points_for

T = TypeVar("T")

Clock = Callable[[], datetime]

# Notification event kinds
CONTEST_CREATED = "contest_created"
CONTEST_PUBLISHED = "contest_published"
REGISTRATION_OPENED = "registration_opened"
CONTEST_STARTED = "contest_started"
CONTEST_ENDED = "contest_ended"
CONTEST_UPDATED = "contest_updated"
PARTICIPANT_JOINED = "participant_joined"
PARTICIPANT_LEFT = "participant_left"
SUBMISSION_JUDGED = "submission_judged"
CLARIFICATION_ASKED = "clarification_asked"
CLARIFICATION_ANSWERED = "clarification_answered"

_TRANSITION_EVENTS = {
    ContestStatus.PUBLISHED: CONTEST_PUBLISHED,
    ContestStatus.REGISTRATION_OPEN: REGISTRATION_OPENED,
    ContestStatus.ACTIVE: CONTEST_STARTED,
    ContestStatus.ENDED: CONTEST_ENDED,
}

_SCHEDULE_FIELDS = ("registration_start", "registration_end", "start_time", "end_time")


@dataclass
class ServiceConfig:
    """Retry and timeout settings for the contest service."""

    max_conflict_retries: int = 5  # reload-and-reapply attempts after a version conflict
    max_transient_retries: int = 3  # store retries after a TransientError
    transient_backoff: float = 0.05  # seconds, doubled on each retry
    lock_timeout: float = 5.0  # seconds to wait for a contest's write lock

    def __post_init__(self):
        """Validate configuration."""
        if self.max_conflict_retries < 0:
            raise ValueError(f"max_conflict_retries must be >= 0, got {self.max_conflict_retries}")
        if self.max_transient_retries < 0:
            raise ValueError(f"max_transient_retries must be >= 0, got {self.max_transient_retries}")
        if self.transient_backoff < 0:
            raise ValueError(f"transient_backoff must be >= 0, got {self.transient_backoff}")
        if self.lock_timeout <= 0:
            raise ValueError(f"lock_timeout must be positive, got {self.lock_timeout}")


class ContestService:
    """Lifecycle, participation, submission and leaderboard operations on contests."""

    def __init__(
        self,
        store: ContestStore,
        judge: JudgePolicy | None = None,
        ranker: LeaderboardRanker | None = None,
        notifier: Notifier | None = None,
        config: ServiceConfig | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize service with its components; unset ones get the defaults."""
        self.store: ContestStore = store
        self.judge: JudgePolicy = judge or RandomStubJudge()
        self.ranker: LeaderboardRanker = ranker or CachedRanker()
        self.notifier: Notifier = notifier or LogNotifier()
        self.config: ServiceConfig = config or ServiceConfig()
        self.clock: Clock = clock

        # One write lock per contest id
        self._locks = dict[str, threading.Lock]()
        self._locks_guard: threading.Lock = threading.Lock()

        self.logger: Logger = get_logger("contest_service")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_contest(self, spec: ContestSpec | Mapping[str, Any], actor: UserContext) -> Contest:
        """Create a contest in draft (or published) state."""
        spec = parse_model(ContestSpec, spec)
        require_community_admin(actor, spec.community_id)
        if spec.status not in INITIAL_STATUSES:
            raise ValidationError(
                f"a new contest must be draft or published, got {spec.status.value}"
            )
        validate_schedule(
            spec.registration_start, spec.registration_end, spec.start_time, spec.end_time
        )

        now = self._now()
        contest = Contest(
            contest_id=spec.contest_id or new_id(),
            title=spec.title,
            community_id=spec.community_id,
            created_by=actor.user_id,
            registration_start=spec.registration_start,
            registration_end=spec.registration_end,
            start_time=spec.start_time,
            end_time=spec.end_time,
            description=spec.description,
            status=spec.status,
            max_participants=spec.max_participants,
            batch=spec.batch,
            mentor_id=spec.mentor_id,
            rules=spec.rules.to_rules(),
            created_at=now,
            updated_at=now,
        )
        contest.set_problems(build_problems(spec.problems))

        self._with_transient_retry(lambda: self.store.insert(contest), f"insert {contest.contest_id}")
        self.logger.info(
            f"Created contest {contest.contest_id} ({contest.title!r}) in community "
            f"{contest.community_id} with {len(contest.problems)} problems, status={contest.status.value}"
        )
        self._notify(CONTEST_CREATED, contest.contest_id, actor.user_id, title=contest.title)
        return contest

    def publish_contest(self, contest_id: str, actor: UserContext) -> Contest:
        return self._transition(contest_id, actor, ContestStatus.PUBLISHED)

    def open_registration(self, contest_id: str, actor: UserContext) -> Contest:
        return self._transition(contest_id, actor, ContestStatus.REGISTRATION_OPEN)

    def start_contest(self, contest_id: str, actor: UserContext) -> Contest:
        return self._transition(contest_id, actor, ContestStatus.ACTIVE)

    def end_contest(self, contest_id: str, actor: UserContext) -> Contest:
        """End an active contest before its end time."""
        return self._transition(contest_id, actor, ContestStatus.ENDED)

    def update_contest(
        self, contest_id: str, patch: ContestPatch | Mapping[str, Any], actor: UserContext
    ) -> Contest:
        """
        Apply administrative changes.

        Problems cannot change once the contest is active or ended.
        """
        patch = parse_model(ContestPatch, patch)

        def apply(contest: Contest, now: datetime) -> list[str]:
            require_manager(actor, contest)

            if patch.provided("problems"):
                status = effective_status(contest, now)
                if problems_locked(status):
                    raise InvalidStateError(
                        f"problems of contest {contest.contest_id} cannot change once it is {status.value}"
                    )
                if patch.problems is None:
                    raise ValidationError("problems cannot be null")
                contest.set_problems(build_problems(patch.problems))

            for name in ("title", "description", "max_participants", "rules"):
                if patch.provided(name) and getattr(patch, name) is None:
                    raise ValidationError(f"{name} cannot be null")

            if patch.title is not None:
                if not patch.title.strip():
                    raise ValidationError("title cannot be blank")
                contest.title = patch.title.strip()
            if patch.description is not None:
                contest.description = patch.description

            if any(patch.provided(name) for name in _SCHEDULE_FIELDS) and is_ended(contest, now):
                raise InvalidStateError(
                    f"schedule of contest {contest.contest_id} cannot change after it has ended"
                )

            schedule = dict[str, datetime]()
            for name in _SCHEDULE_FIELDS:
                value = getattr(patch, name)
                if patch.provided(name) and value is None:
                    raise ValidationError(f"{name} cannot be null")
                schedule[name] = value if value is not None else getattr(contest, name)
            validate_schedule(**schedule)
            for name, value in schedule.items():
                setattr(contest, name, value)

            if patch.max_participants is not None:
                if patch.max_participants < contest.participant_count:
                    raise ValidationError(
                        f"max_participants {patch.max_participants} is below the current "
                        f"participant count {contest.participant_count}"
                    )
                contest.max_participants = patch.max_participants
            if patch.provided("batch"):
                contest.batch = patch.batch
            if patch.provided("mentor_id"):
                contest.mentor_id = patch.mentor_id
            if patch.rules is not None:
                contest.rules = patch.rules.to_rules()

            return sorted(patch.model_fields_set)

        contest, changed = self._mutate(contest_id, apply)
        self.logger.info(f"Updated contest {contest_id}: {', '.join(changed) or 'no fields'}")
        self._notify(CONTEST_UPDATED, contest_id, actor.user_id, fields=changed)
        return contest

    def get_contest(self, contest_id: str, requester: UserContext) -> Contest:
        contest = self._load(contest_id)
        require_viewer(requester, contest)
        return contest

    def list_contests(self, requester: UserContext) -> list[Contest]:
        """
        Contests visible to the requester, ordered by start time.

        Community admins see all of their community's contests, mentors the
        ones assigned to them, students the non-draft ones of their batch.
        """
        contests = self._with_transient_retry(
            lambda: list(self.store.list_contests(requester.community_id)),
            f"list contests of {requester.community_id}",
        )
        if is_community_admin(requester, requester.community_id):
            visible = contests
        elif requester.role is Role.MENTOR:
            visible = [c for c in contests if c.mentor_id == requester.user_id]
        else:
            visible = [
                c for c in contests
                if in_batch(requester, c) and c.status is not ContestStatus.DRAFT
            ]
        return sorted(visible, key=lambda c: (c.start_time, c.contest_id))

    def effective_status(self, contest: Contest) -> ContestStatus:
        return effective_status(contest, self._now())

    # ------------------------------------------------------------------
    # Participation
    # ------------------------------------------------------------------

    def join_contest(self, contest_id: str, user: UserContext) -> Participant:
        """Enroll a user; a second join by the same user is a conflict."""

        def apply(contest: Contest, now: datetime) -> Participant:
            require_eligible(user, contest)
            status = effective_status(contest, now)
            if status is ContestStatus.ENDED:
                raise InvalidStateError(f"contest {contest.contest_id} has already ended")
            if not accepts_participants(status):
                raise InvalidStateError(
                    f"contest {contest.contest_id} is not open for participants ({status.value})"
                )
            if user.user_id in contest.participants:
                raise ConflictError(
                    f"user {user.user_id} already joined contest {contest.contest_id}"
                )
            if contest.participant_count >= contest.max_participants:
                raise InvalidStateError(f"contest {contest.contest_id} is full")

            participant = Participant(
                user_id=user.user_id,
                joined_at=now,
                display_name=user.display_name or user.user_id,
                email=user.email,
            )
            contest.participants[user.user_id] = participant
            return participant

        contest, participant = self._mutate(contest_id, apply)
        self.logger.info(
            f"User {user.user_id} joined contest {contest_id} "
            f"({contest.participant_count}/{contest.max_participants})"
        )
        self._notify(PARTICIPANT_JOINED, contest_id, user.user_id)
        return participant

    def leave_contest(self, contest_id: str, user: UserContext) -> None:
        """Withdraw before the first submission."""

        def apply(contest: Contest, now: datetime) -> None:
            participant = contest.get_participant(user.user_id)
            if is_ended(contest, now):
                raise InvalidStateError(f"contest {contest.contest_id} has already ended")
            if participant.submissions:
                raise InvalidStateError(
                    f"user {user.user_id} cannot leave contest {contest.contest_id} after submitting"
                )
            del contest.participants[user.user_id]

        self._mutate(contest_id, apply)
        self.logger.info(f"User {user.user_id} left contest {contest_id}")
        self._notify(PARTICIPANT_LEFT, contest_id, user.user_id)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def submit_solution(
        self,
        contest_id: str,
        user: UserContext,
        problem_id: str,
        code: str,
        language: str,
    ) -> SubmissionResult:
        """
        Judge a submission and record it against the participant.

        The judge runs on a snapshot outside the lock; preconditions are checked
        again before the submission is recorded.
        """
        if not code or not code.strip():
            raise ValidationError("code cannot be empty")
        if not language or not language.strip():
            raise ValidationError("language cannot be empty")
        language = language.strip().lower()

        snapshot = self._load(contest_id)
        problem = self._check_submittable(snapshot, user, problem_id, language, self._now())
        verdict = self.judge.judge(problem, code, language)
        self.logger.debug(f"Judge {verdict.judge_id} returned {verdict.status.value} for {problem_id}")

        def apply(contest: Contest, now: datetime) -> SubmissionResult:
            current = self._check_submittable(contest, user, problem_id, language, now)
            participant = contest.participants[user.user_id]
            points = points_for(verdict, current, participant, contest.rules)
            submission = Submission(
                submission_id=new_id(),
                problem_id=problem_id,
                code=code,
                language=language,
                status=verdict.status,
                submitted_at=now,
                points_awarded=points,
            )
            participant.record(submission)
            return SubmissionResult(
                submission_id=submission.submission_id,
                status=submission.status,
                points_awarded=points,
                current_score=participant.score,
            )

        _, result = self._mutate(contest_id, apply)
        self.logger.info(
            f"Submission {result.submission_id} by {user.user_id} on {contest_id}/{problem_id}: "
            f"{result.status.value}, {result.points_awarded:+d} -> {result.current_score}"
        )
        self._notify(
            SUBMISSION_JUDGED,
            contest_id,
            user.user_id,
            problem_id=problem_id,
            status=result.status.value,
            points_awarded=result.points_awarded,
        )
        return result

    def _check_submittable(
        self, contest: Contest, user: UserContext, problem_id: str, language: str, now: datetime
    ) -> Problem:
        require_member(user, contest)
        status = effective_status(contest, now)
        if not accepts_submissions(status):
            raise InvalidStateError(
                f"contest {contest.contest_id} is not active for submissions ({status.value})"
            )
        contest.get_participant(user.user_id)
        problem = contest.get_problem(problem_id)
        if not contest.rules.allows_language(language):
            raise ValidationError(
                f"language {language} is not allowed; use one of "
                f"{', '.join(contest.rules.allowed_languages)}"
            )
        return problem

    # ------------------------------------------------------------------
    # Leaderboard and statistics
    # ------------------------------------------------------------------

    def get_leaderboard(self, contest_id: str, requester: UserContext) -> list[RankedEntry]:
        """Rank participants; contact fields only for the admin or the user themself."""
        contest = self._load(contest_id)
        require_member(requester, contest)
        return [
            RankedEntry(
                rank=standing.rank,
                user_id=standing.participant.user_id,
                display_name=standing.participant.display_name,
                score=standing.participant.score,
                submission_count=standing.participant.submission_count,
                problems_solved=len(standing.participant.solved_problem_ids()),
                email=(
                    standing.participant.email
                    if may_see_contact(requester, contest, standing.participant.user_id)
                    else None
                ),
            )
            for standing in self.ranker.rank(contest)
        ]

    def contest_stats(self, contest_id: str, actor: UserContext) -> ContestStats:
        contest = self._load(contest_id)
        require_manager(actor, contest)

        participants = list(contest.participants.values())
        submissions = [sub for p in participants for sub in p.submissions]
        per_problem = {problem_id: [0, 0] for problem_id in contest.problem_order}
        for sub in submissions:
            counts = per_problem.setdefault(sub.problem_id, [0, 0])
            counts[0] += 1
            if sub.status is SubmissionStatus.ACCEPTED:
                counts[1] += 1

        total = len(participants)
        return ContestStats(
            total_participants=total,
            total_submissions=len(submissions),
            accepted_submissions=sum(counts[1] for counts in per_problem.values()),
            average_score=(sum(p.score for p in participants) / total) if total else 0.0,
            completion_rate=(
                sum(1 for p in participants if p.solved_problem_ids()) / total * 100.0
                if total
                else 0.0
            ),
            problems=tuple(
                ProblemStats(problem_id=problem_id, submissions=counts[0], accepted=counts[1])
                for problem_id, counts in per_problem.items()
            ),
        )

    # ------------------------------------------------------------------
    # Clarifications
    # ------------------------------------------------------------------

    def ask_clarification(
        self,
        contest_id: str,
        user: UserContext,
        question: str,
        problem_id: str | None = None,
    ) -> Clarification:
        if not question or not question.strip():
            raise ValidationError("question cannot be empty")

        def apply(contest: Contest, now: datetime) -> Clarification:
            require_member(user, contest)
            if not contest.rules.allow_clarifications:
                raise InvalidStateError(
                    f"clarifications are disabled for contest {contest.contest_id}"
                )
            if is_ended(contest, now):
                raise InvalidStateError(f"contest {contest.contest_id} has already ended")
            contest.get_participant(user.user_id)
            if problem_id is not None:
                contest.get_problem(problem_id)
            clarification = Clarification(
                clarification_id=new_id(),
                user_id=user.user_id,
                question=question.strip(),
                asked_at=now,
                problem_id=problem_id,
            )
            contest.clarifications.append(clarification)
            return clarification

        _, clarification = self._mutate(contest_id, apply)
        self.logger.info(
            f"User {user.user_id} asked clarification {clarification.clarification_id} on {contest_id}"
        )
        self._notify(CLARIFICATION_ASKED, contest_id, user.user_id, problem_id=problem_id)
        return clarification

    def answer_clarification(
        self,
        contest_id: str,
        actor: UserContext,
        clarification_id: str,
        answer: str,
        public: bool = False,
    ) -> Clarification:
        if not answer or not answer.strip():
            raise ValidationError("answer cannot be empty")

        def apply(contest: Contest, now: datetime) -> Clarification:
            require_manager(actor, contest)
            clarification = contest.get_clarification(clarification_id)
            clarification.answer = answer.strip()
            clarification.answered_by = actor.user_id
            clarification.answered_at = now
            clarification.public = public
            return clarification

        _, clarification = self._mutate(contest_id, apply)
        self.logger.info(f"Clarification {clarification_id} on {contest_id} answered by {actor.user_id}")
        self._notify(
            CLARIFICATION_ANSWERED,
            contest_id,
            actor.user_id,
            clarification_id=clarification_id,
            asked_by=clarification.user_id,
            public=public,
        )
        return clarification

    def list_clarifications(self, contest_id: str, requester: UserContext) -> list[Clarification]:
        """Managers see every clarification; others see public ones and their own."""
        contest = self._load(contest_id)
        require_viewer(requester, contest)
        if is_contest_manager(requester, contest):
            return list(contest.clarifications)
        return [
            c for c in contest.clarifications
            if c.public or c.user_id == requester.user_id
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    def _transition(self, contest_id: str, actor: UserContext, target: ContestStatus) -> Contest:
        def apply(contest: Contest, now: datetime) -> ContestStatus:
            require_manager(actor, contest)
            previous = effective_status(contest, now)
            transition(contest, target, now)
            return previous

        contest, previous = self._mutate(contest_id, apply)
        self.logger.info(
            f"Contest {contest_id}: {previous.value} -> {target.value} by {actor.user_id}"
        )
        self._notify(_TRANSITION_EVENTS[target], contest_id, actor.user_id, previous=previous.value)
        return contest

    def _lock_for(self, contest_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(contest_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[contest_id] = lock
            return lock

    def _forget_lock(self, contest_id: str, lock: threading.Lock) -> None:
        """Drop the write lock of a contest id that has no stored contest."""
        with self._locks_guard:
            if self._locks.get(contest_id) is lock:
                del self._locks[contest_id]

    def _load(self, contest_id: str) -> Contest:
        return self._with_transient_retry(lambda: self.store.load(contest_id), f"load {contest_id}")

    def _mutate(self, contest_id: str, mutation: Callable[[Contest, datetime], T]) -> tuple[Contest, T]:
        """
        Load, change and save a contest under its write lock.

        The mutation receives a freshly loaded contest and the current time. If
        the save loses against another writer, the contest is reloaded and the
        mutation applied again, up to max_conflict_retries times.
        """
        lock = self._lock_for(contest_id)
        if not lock.acquire(timeout=self.config.lock_timeout):
            raise TransientError(f"timed out waiting for contest {contest_id}")
        try:
            conflicts = 0
            while True:
                try:
                    contest = self._load(contest_id)
                except NotFoundError:
                    self._forget_lock(contest_id, lock)
                    raise
                now = self._now()
                result = mutation(contest, now)
                expected_version = contest.version
                contest.updated_at = now
                try:
                    self._with_transient_retry(
                        lambda: self.store.save(contest, expected_version),
                        f"save {contest_id}",
                    )
                    return contest, result
                except VersionConflictError as e:
                    conflicts += 1
                    if conflicts > self.config.max_conflict_retries:
                        self.logger.error(
                            f"Giving up on contest {contest_id} after {conflicts} version conflicts"
                        )
                        raise ConflictError(
                            f"contest {contest_id} is being modified concurrently, try again"
                        ) from e
                    self.logger.warning(f"{e}; retrying ({conflicts}/{self.config.max_conflict_retries})")
        finally:
            lock.release()

    def _with_transient_retry(self, operation: Callable[[], T], description: str) -> T:
        """Run a store operation, retrying TransientError with exponential backoff."""
        attempt = 0
        while True:
            try:
                return operation()
            except TransientError as e:
                attempt += 1
                if attempt > self.config.max_transient_retries:
                    self.logger.error(f"Storage failed for {description} after {attempt} attempts: {e}")
                    raise
                delay = self.config.transient_backoff * (2 ** (attempt - 1))
                self.logger.warning(
                    f"Transient storage error during {description} ({e}); "
                    f"retry {attempt}/{self.config.max_transient_retries} in {delay:.2f}s"
                )
                time.sleep(delay)

    def _notify(self, kind: str, contest_id: str, actor_id: str | None, **payload: Any) -> None:
        event = ContestEvent(
            kind=kind,
            contest_id=contest_id,
            actor_id=actor_id,
            payload=payload,
            occurred_at=self._now(),
        )
        try:
            self.notifier.notify(event)
        except Exception as e:
            # Notifications are fire-and-forget
            self.logger.warning(f"Notifier failed for {kind} on contest {contest_id}: {e}")
