"""
Conversion between Contest aggregates and their stored documents.

Documents are plain JSON-compatible dicts; datetimes are ISO-8601 UTC strings.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..interfaces import (
    ClarificationDocument,
    ContestDocument,
    ParticipantDocument,
    ProblemDocument,
    SubmissionDocument,
)
from ..models import (
    Clarification,
    Contest,
    ContestRules,
    ContestStatus,
    Difficulty,
    Participant,
    Problem,
    ProblemTestCase,
    ScoringSystem,
    Submission,
    SubmissionStatus,
    ensure_utc,
)

_document_adapter = TypeAdapter(ContestDocument)


def _dt(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def _opt_dt(value: datetime | None) -> str | None:
    return None if value is None else _dt(value)


def _parse_dt(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


def _problem_to_document(problem: Problem) -> ProblemDocument:
    return {
        "problem_id": problem.problem_id,
        "title": problem.title,
        "description": problem.description,
        "difficulty": problem.difficulty.value,
        "points": problem.points,
        "test_cases": [
            {"input": case.input, "expected_output": case.expected_output, "hidden": case.hidden}
            for case in problem.test_cases
        ],
    }


def _submission_to_document(sub: Submission) -> SubmissionDocument:
    return {
        "submission_id": sub.submission_id,
        "problem_id": sub.problem_id,
        "code": sub.code,
        "language": sub.language,
        "status": sub.status.value,
        "submitted_at": _dt(sub.submitted_at),
        "points_awarded": sub.points_awarded,
    }


def _participant_to_document(participant: Participant) -> ParticipantDocument:
    return {
        "user_id": participant.user_id,
        "display_name": participant.display_name,
        "email": participant.email,
        "joined_at": _dt(participant.joined_at),
        "score": participant.score,
        "submissions": [_submission_to_document(sub) for sub in participant.submissions],
    }


def _clarification_to_document(item: Clarification) -> ClarificationDocument:
    return {
        "clarification_id": item.clarification_id,
        "user_id": item.user_id,
        "question": item.question,
        "asked_at": _dt(item.asked_at),
        "problem_id": item.problem_id,
        "answer": item.answer,
        "answered_by": item.answered_by,
        "answered_at": _opt_dt(item.answered_at),
        "public": item.public,
    }


def contest_to_document(contest: Contest) -> ContestDocument:
    """Serialize a contest into its stored document."""
    rules = contest.rules
    return {
        "contest_id": contest.contest_id,
        "title": contest.title,
        "description": contest.description,
        "community_id": contest.community_id,
        "created_by": contest.created_by,
        "mentor_id": contest.mentor_id,
        "batch": contest.batch,
        "status": contest.status.value,
        "registration_start": _dt(contest.registration_start),
        "registration_end": _dt(contest.registration_end),
        "start_time": _dt(contest.start_time),
        "end_time": _dt(contest.end_time),
        "max_participants": contest.max_participants,
        "rules": {
            "allowed_languages": list(rules.allowed_languages),
            "scoring_system": rules.scoring_system.value,
            "penalty_per_wrong_submission": rules.penalty_per_wrong_submission,
            "allow_partial_scoring": rules.allow_partial_scoring,
            "allow_clarifications": rules.allow_clarifications,
        },
        "problems": [_problem_to_document(problem) for problem in contest.ordered_problems()],
        "participants": [
            _participant_to_document(participant)
            for participant in contest.participants.values()
        ],
        "clarifications": [_clarification_to_document(item) for item in contest.clarifications],
        "version": contest.version,
        "created_at": _dt(contest.created_at),
        "updated_at": _dt(contest.updated_at),
    }


def contest_from_document(data: Mapping[str, Any]) -> Contest:
    """
    Rebuild a contest from a stored document.

    Raises:
        ValidationError: If the document is malformed or breaks an invariant
    """
    try:
        doc = _document_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(f"stored contest document is invalid: {e.error_count()} errors") from e

    try:
        rules_doc = doc["rules"]
        problems = [
            Problem(
                problem_id=item["problem_id"],
                title=item["title"],
                points=item["points"],
                description=item["description"],
                difficulty=Difficulty(item["difficulty"]),
                test_cases=tuple(
                    ProblemTestCase(
                        input=case["input"],
                        expected_output=case["expected_output"],
                        hidden=case["hidden"],
                    )
                    for case in item["test_cases"]
                ),
            )
            for item in doc["problems"]
        ]
        participants = {
            item["user_id"]: Participant(
                user_id=item["user_id"],
                joined_at=_parse_dt(item["joined_at"]),
                display_name=item["display_name"],
                email=item["email"],
                score=item["score"],
                submissions=[
                    Submission(
                        submission_id=sub["submission_id"],
                        problem_id=sub["problem_id"],
                        code=sub["code"],
                        language=sub["language"],
                        status=SubmissionStatus(sub["status"]),
                        submitted_at=_parse_dt(sub["submitted_at"]),
                        points_awarded=sub["points_awarded"],
                    )
                    for sub in item["submissions"]
                ],
            )
            for item in doc["participants"]
        }
        clarifications = [
            Clarification(
                clarification_id=item["clarification_id"],
                user_id=item["user_id"],
                question=item["question"],
                asked_at=_parse_dt(item["asked_at"]),
                problem_id=item["problem_id"],
                answer=item["answer"],
                answered_by=item["answered_by"],
                answered_at=None if item["answered_at"] is None else _parse_dt(item["answered_at"]),
                public=item["public"],
            )
            for item in doc["clarifications"]
        ]
        contest = Contest(
            contest_id=doc["contest_id"],
            title=doc["title"],
            community_id=doc["community_id"],
            created_by=doc["created_by"],
            registration_start=_parse_dt(doc["registration_start"]),
            registration_end=_parse_dt(doc["registration_end"]),
            start_time=_parse_dt(doc["start_time"]),
            end_time=_parse_dt(doc["end_time"]),
            description=doc["description"],
            status=ContestStatus(doc["status"]),
            max_participants=doc["max_participants"],
            batch=doc["batch"],
            mentor_id=doc["mentor_id"],
            rules=ContestRules(
                allowed_languages=tuple(rules_doc["allowed_languages"]),
                scoring_system=ScoringSystem(rules_doc["scoring_system"]),
                penalty_per_wrong_submission=rules_doc["penalty_per_wrong_submission"],
                allow_partial_scoring=rules_doc["allow_partial_scoring"],
                allow_clarifications=rules_doc["allow_clarifications"],
            ),
            participants=participants,
            clarifications=clarifications,
            version=doc["version"],
            created_at=_parse_dt(doc["created_at"]),
            updated_at=_parse_dt(doc["updated_at"]),
        )
        contest.set_problems(problems)
    except ValueError as e:
        # unknown enum values and bad timestamps
        raise ValidationError(f"stored contest document is invalid: {e}") from e
    return contest
