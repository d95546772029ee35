"""
JSON file contest store.

Persists one JSON document per contest and appends an audit line per write to
an events JSONL file. Documents are replaced atomically.
"""

import json
import os
import re
import tempfile
import threading
import time
import typing
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..exceptions import (
    ConflictError,
    NotFoundError,
    TransientError,
    ValidationError,
    VersionConflictError,
)
from ..interfaces import ContestStore
from ..logging_config import get_logger
from ..models import Contest
from .documents import contest_from_document, contest_to_document

# Module-level logger
logger = get_logger("json_store")

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class JSONContestStore(ContestStore):
    """
    File-backed store.

    Layout under root_dir:
        contests/<contest_id>.json   latest document per contest
        events.jsonl                 append-only write log

    Version checks are serialized by a process-local lock, so one store
    instance per process should own a directory.
    """

    root_dir: Path
    contests_dir: Path
    events_path: Path

    def __init__(self, root_dir: Path | str, timeout: float = 5.0):
        """
        Initialize JSON storage.

        Args:
            root_dir: Directory holding the contest documents and event log
            timeout: Seconds to wait for the write lock before failing transiently
        """
        self.root_dir = Path(root_dir)
        self.contests_dir = self.root_dir / "contests"
        self.events_path = self.root_dir / "events.jsonl"
        self.timeout: float = timeout
        self._lock: threading.Lock = threading.Lock()

        self.contests_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"JSON contest store initialized: contests={self.contests_dir}, events={self.events_path}"
        )

    def _path_for(self, contest_id: str) -> Path:
        if not _SAFE_ID.match(contest_id):
            raise ValidationError(f"invalid contest id: {contest_id!r}")
        return self.contests_dir / f"{contest_id}.json"

    def _acquire(self) -> None:
        if not self._lock.acquire(timeout=self.timeout):
            raise TransientError("contest store timed out")

    def _read_document(self, path: Path) -> dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return typing.cast(dict[str, Any], json.load(f))  # pyright: ignore[reportExplicitAny]
        except FileNotFoundError:
            raise
        except OSError as e:
            raise TransientError(f"failed to read {path.name}") from e
        except json.JSONDecodeError as e:
            raise ValidationError(f"stored contest document {path.name} is not valid JSON") from e

    def _write_document(self, path: Path, contest: Contest) -> None:
        """Write to a temp file in the same directory, then replace atomically."""
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.contests_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(contest_to_document(contest), f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise TransientError(f"failed to write {path.name}") from e

    def _append_event(self, action: str, contest: Contest) -> None:
        data = {
            "action": action,
            "contest_id": contest.contest_id,
            "version": contest.version,
            "status": contest.status.value,
            "participants": contest.participant_count,
            "submissions": sum(p.submission_count for p in contest.participants.values()),
            "timestamp": time.time(),
        }
        try:
            with open(self.events_path, "a", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            # The document is already written; a lost audit line is not fatal
            logger.warning(f"Failed to append event for {contest.contest_id}: {e}")

    @override
    def load(self, contest_id: str) -> Contest:
        path = self._path_for(contest_id)
        try:
            data = self._read_document(path)
        except FileNotFoundError:
            raise NotFoundError(f"contest {contest_id} not found") from None
        return contest_from_document(data)

    @override
    def insert(self, contest: Contest) -> None:
        path = self._path_for(contest.contest_id)
        self._acquire()
        try:
            if path.exists():
                raise ConflictError(f"contest {contest.contest_id} already exists")
            contest.version = 1
            self._write_document(path, contest)
            self._append_event("insert", contest)
        finally:
            self._lock.release()
        logger.debug(f"Inserted contest {contest.contest_id} at {path}")

    @override
    def save(self, contest: Contest, expected_version: int) -> None:
        path = self._path_for(contest.contest_id)
        self._acquire()
        try:
            try:
                current = self._read_document(path)
            except FileNotFoundError:
                raise NotFoundError(f"contest {contest.contest_id} not found") from None
            current_version = current.get("version")
            if current_version != expected_version:
                raise VersionConflictError(
                    contest.contest_id,
                    expected_version,
                    current_version if isinstance(current_version, int) else -1,
                )
            contest.version = expected_version + 1
            try:
                self._write_document(path, contest)
            except TransientError:
                contest.version = expected_version
                raise
            self._append_event("save", contest)
        finally:
            self._lock.release()
        logger.debug(f"Saved contest {contest.contest_id} at version {contest.version}")

    @override
    def list_contests(self, community_id: str | None = None) -> Iterable[Contest]:
        for path in sorted(self.contests_dir.glob("*.json")):
            try:
                contest = contest_from_document(self._read_document(path))
            except FileNotFoundError:
                continue  # removed between glob and read
            except ValidationError as e:
                logger.warning(f"Skipping unreadable contest document {path}: {e}")
                continue
            if community_id is None or contest.community_id == community_id:
                yield contest

    def load_events(self) -> Iterator[dict[str, Any]]:
        """Load the write log, skipping corrupted lines."""
        if not self.events_path.exists():
            return

        with open(self.events_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = typing.cast(dict[str, Any], json.loads(line))  # pyright: ignore[reportExplicitAny]
                    assert isinstance(data, dict), "event must be an object"
                    assert "contest_id" in data, "Missing required field: contest_id"
                    assert "version" in data, "Missing required field: version"
                    yield data
                except (json.JSONDecodeError, AssertionError) as e:
                    logger.warning(f"Skipping invalid JSON line in {self.events_path}: {e}")
                    continue

    def get_event_count(self) -> int:
        return sum(1 for _ in self.load_events())
