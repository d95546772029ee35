"""
In-memory contest store.

Keeps one serialized document per contest so every load hands out an
independent copy, the same way a document database would.
"""

import threading
from collections.abc import Iterable

from typing_extensions import override

from ..exceptions import ConflictError, NotFoundError, TransientError, VersionConflictError
from ..interfaces import ContestDocument, ContestStore
from ..logging_config import get_logger
from ..models import Contest
from .documents import contest_from_document, contest_to_document

# Module-level logger
logger = get_logger("memory_store")


class InMemoryContestStore(ContestStore):
    """Thread-safe dict-backed store with compare-and-set saves."""

    def __init__(self, timeout: float = 5.0):
        """
        Initialize the store.

        Args:
            timeout: Seconds to wait for the internal lock before failing transiently
        """
        self.timeout: float = timeout
        self._documents = dict[str, ContestDocument]()
        self._lock: threading.Lock = threading.Lock()

    def _acquire(self) -> None:
        if not self._lock.acquire(timeout=self.timeout):
            raise TransientError("contest store timed out")

    @override
    def load(self, contest_id: str) -> Contest:
        self._acquire()
        try:
            document = self._documents.get(contest_id)
        finally:
            self._lock.release()
        if document is None:
            raise NotFoundError(f"contest {contest_id} not found")
        return contest_from_document(document)

    @override
    def insert(self, contest: Contest) -> None:
        self._acquire()
        try:
            if contest.contest_id in self._documents:
                raise ConflictError(f"contest {contest.contest_id} already exists")
            contest.version = 1
            self._documents[contest.contest_id] = contest_to_document(contest)
        finally:
            self._lock.release()
        logger.debug(f"Inserted contest {contest.contest_id}")

    @override
    def save(self, contest: Contest, expected_version: int) -> None:
        self._acquire()
        try:
            current = self._documents.get(contest.contest_id)
            if current is None:
                raise NotFoundError(f"contest {contest.contest_id} not found")
            if current["version"] != expected_version:
                raise VersionConflictError(
                    contest.contest_id, expected_version, current["version"]
                )
            contest.version = expected_version + 1
            self._documents[contest.contest_id] = contest_to_document(contest)
        finally:
            self._lock.release()
        logger.debug(f"Saved contest {contest.contest_id} at version {contest.version}")

    @override
    def list_contests(self, community_id: str | None = None) -> Iterable[Contest]:
        self._acquire()
        try:
            documents = list(self._documents.values())
        finally:
            self._lock.release()
        for document in documents:
            if community_id is None or document["community_id"] == community_id:
                yield contest_from_document(document)

    def clear(self) -> None:
        """Drop all contests (for testing)."""
        with self._lock:
            self._documents.clear()

    def get_contest_count(self) -> int:
        return len(self._documents)
