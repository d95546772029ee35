"""
Exception classes for the contest subsystem.

Centralized location for all custom exceptions to avoid circular imports.
Every error carries a stable machine-readable kind and a retryable flag.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Stable error kinds exposed to callers."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    INVALID_STATE = "invalid_state"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSIENT = "transient"
    INTERNAL = "internal"


class ContestError(Exception):
    """Base exception for all contest-related errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message: str = message


class ValidationError(ContestError):
    """Malformed input or broken schedule invariant."""

    kind = ErrorKind.VALIDATION


class AuthorizationError(ContestError):
    """Actor lacks the role, community or batch for the operation."""

    kind = ErrorKind.AUTHORIZATION


class InvalidStateError(ContestError):
    """Operation is illegal in the contest's current lifecycle state."""

    kind = ErrorKind.INVALID_STATE


class NotFoundError(ContestError):
    """Referenced contest, problem, participant or clarification is missing."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(ContestError):
    """Duplicate join, or a write that lost against a concurrent writer."""

    kind = ErrorKind.CONFLICT


class VersionConflictError(ConflictError):
    """Stored aggregate version no longer matches the expected version."""

    retryable = True

    def __init__(self, contest_id: str, expected: int, actual: int):
        super().__init__(
            f"contest {contest_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.contest_id: str = contest_id
        self.expected: int = expected
        self.actual: int = actual


class TransientError(ContestError):
    """Storage timeout or failure that may succeed on retry."""

    kind = ErrorKind.TRANSIENT
    retryable = True
