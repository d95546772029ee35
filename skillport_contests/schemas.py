"""
Input schemas for contest creation and updates.

Payloads arrive from route handlers as camelCase or snake_case JSON; they are
validated with pydantic and turned into domain objects. Schema errors surface
as the package's ValidationError.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .exceptions import ValidationError
from .models import (
    ContestRules,
    ContestStatus,
    Difficulty,
    Problem,
    ProblemTestCase,
    ScoringSystem,
    ensure_utc,
)

UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]

ModelT = TypeVar("ModelT", bound=BaseModel)


class SpecModel(BaseModel):
    """Base for request payloads: camelCase aliases, unknown fields rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


class ProblemTestCaseSpec(SpecModel):
    input: str
    expected_output: str
    hidden: bool = True


class ProblemSpec(SpecModel):
    problem_id: str | None = None
    title: str = Field(min_length=1)
    description: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    points: int = Field(default=100, gt=0)
    test_cases: list[ProblemTestCaseSpec] = Field(default_factory=list)

    def to_problem(self, position: int) -> Problem:
        """Build the Problem; ids default to P1, P2, ... by position."""
        return Problem(
            problem_id=self.problem_id or f"P{position}",
            title=self.title,
            points=self.points,
            description=self.description,
            difficulty=self.difficulty,
            test_cases=tuple(
                ProblemTestCase(
                    input=case.input,
                    expected_output=case.expected_output,
                    hidden=case.hidden,
                )
                for case in self.test_cases
            ),
        )


class RulesSpec(SpecModel):
    allowed_languages: list[str] = Field(default_factory=list)
    scoring_system: ScoringSystem = ScoringSystem.ICPC
    penalty_per_wrong_submission: int = Field(default=0, ge=0)
    allow_partial_scoring: bool = False
    allow_clarifications: bool = True

    @field_validator("allowed_languages")
    @classmethod
    def _normalize_languages(cls, value: list[str]) -> list[str]:
        return [language.strip().lower() for language in value if language.strip()]

    def to_rules(self) -> ContestRules:
        return ContestRules(
            allowed_languages=tuple(self.allowed_languages),
            scoring_system=self.scoring_system,
            penalty_per_wrong_submission=self.penalty_per_wrong_submission,
            allow_partial_scoring=self.allow_partial_scoring,
            allow_clarifications=self.allow_clarifications,
        )


class ContestSpec(SpecModel):
    """Payload for creating a contest."""

    contest_id: str | None = None
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    community_id: str = Field(min_length=1)
    registration_start: UtcDatetime
    registration_end: UtcDatetime
    start_time: UtcDatetime
    end_time: UtcDatetime
    max_participants: int = Field(default=100, ge=1)
    batch: str | None = None
    mentor_id: str | None = None
    rules: RulesSpec = Field(default_factory=RulesSpec)
    problems: list[ProblemSpec] = Field(default_factory=list)
    status: ContestStatus = ContestStatus.DRAFT

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title cannot be blank")
        return value


class ContestPatch(SpecModel):
    """
    Partial update of administrative fields.

    Only fields present in the payload are applied, so an explicit null clears
    batch or mentor_id while an absent key leaves them alone.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    registration_start: UtcDatetime | None = None
    registration_end: UtcDatetime | None = None
    start_time: UtcDatetime | None = None
    end_time: UtcDatetime | None = None
    max_participants: int | None = Field(default=None, ge=1)
    batch: str | None = None
    mentor_id: str | None = None
    rules: RulesSpec | None = None
    problems: list[ProblemSpec] | None = None

    def provided(self, name: str) -> bool:
        return name in self.model_fields_set


def build_problems(specs: list[ProblemSpec]) -> list[Problem]:
    return [spec.to_problem(position) for position, spec in enumerate(specs, 1)]


def format_errors(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into one human-readable line."""
    parts = list[str]()
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def parse_model(model_cls: type[ModelT], payload: ModelT | Mapping[str, Any]) -> ModelT:
    """Validate a payload into model_cls, raising the package's ValidationError."""
    if isinstance(payload, model_cls):
        return payload
    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid {model_cls.__name__}: {format_errors(e)}") from e
