"""
Tests for InMemoryContestStore.
"""

import threading

import pytest

from skillport_contests.exceptions import (
    ConflictError,
    NotFoundError,
    TransientError,
    VersionConflictError,
)
from skillport_contests.storage.memory_store import InMemoryContestStore

from .test_json_store import build_contest


class TestInMemoryContestStore:
    def test_loads_are_independent_copies(self) -> None:
        # Arrange
        store = InMemoryContestStore()
        store.insert(build_contest())

        # Act
        copy = store.load("spring-1")
        copy.title = "Changed locally"

        # Assert
        assert store.load("spring-1").title == "Spring Sprint"

    def test_save_bumps_version(self) -> None:
        store = InMemoryContestStore()
        contest = build_contest()
        store.insert(contest)

        store.save(contest, expected_version=1)
        store.save(contest, expected_version=2)

        assert store.load("spring-1").version == 3

    def test_stale_save_raises(self) -> None:
        store = InMemoryContestStore()
        contest = build_contest()
        store.insert(contest)
        store.save(contest, expected_version=1)

        with pytest.raises(VersionConflictError):
            store.save(contest, expected_version=1)

    def test_duplicate_and_missing(self) -> None:
        store = InMemoryContestStore()
        store.insert(build_contest())

        with pytest.raises(ConflictError):
            store.insert(build_contest())
        with pytest.raises(NotFoundError):
            _ = store.load("other")

    def test_list_by_community(self) -> None:
        store = InMemoryContestStore()
        store.insert(build_contest("a", community_id="c1"))
        store.insert(build_contest("b", community_id="c2"))

        assert [c.contest_id for c in store.list_contests("c2")] == ["b"]
        assert store.get_contest_count() == 2

    def test_lock_timeout_is_transient(self) -> None:
        # Arrange
        store = InMemoryContestStore(timeout=0.01)
        store.insert(build_contest())
        holder_ready = threading.Event()
        release = threading.Event()

        def hold_lock() -> None:
            with store._lock:
                holder_ready.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        holder_ready.wait(timeout=5)

        # Act / Assert
        try:
            with pytest.raises(TransientError):
                _ = store.load("spring-1")
        finally:
            release.set()
            holder.join()

    def test_clear(self) -> None:
        store = InMemoryContestStore()
        store.insert(build_contest())

        store.clear()

        assert store.get_contest_count() == 0
