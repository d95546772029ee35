"""
SkillPort Contests - contest participation and scoring

Contest lifecycle, participation, judged submissions and a deterministic
leaderboard for the SkillPort learning communities.
"""

from .api import ApiResult, ContestAPI
from .exceptions import (
    AuthorizationError,
    ConflictError,
    ContestError,
    ErrorKind,
    InvalidStateError,
    NotFoundError,
    TransientError,
    ValidationError,
    VersionConflictError,
)
from .interfaces import ContestStore, JudgePolicy, LeaderboardRanker, Notifier
from .models import (
    Contest,
    ContestRules,
    ContestStatus,
    Participant,
    Problem,
    RankedEntry,
    Role,
    Submission,
    SubmissionResult,
    SubmissionStatus,
    UserContext,
    Verdict,
)
from .service import ContestService, ServiceConfig

__version__ = "0.1.0"
__all__ = [
    "ApiResult",
    "ContestAPI",
    "ContestService",
    "ServiceConfig",
    "ContestStore",
    "JudgePolicy",
    "LeaderboardRanker",
    "Notifier",
    "Contest",
    "ContestRules",
    "ContestStatus",
    "Participant",
    "Problem",
    "RankedEntry",
    "Role",
    "Submission",
    "SubmissionResult",
    "SubmissionStatus",
    "UserContext",
    "Verdict",
    "ContestError",
    "ErrorKind",
    "ValidationError",
    "AuthorizationError",
    "InvalidStateError",
    "NotFoundError",
    "ConflictError",
    "VersionConflictError",
    "TransientError",
]
