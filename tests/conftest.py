"""
Shared fixtures: a controllable clock, stores, users and contest payloads.
"""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from skillport_contests.api import ContestAPI
from skillport_contests.interfaces import Notifier
from skillport_contests.judges.scripted_judge import ScriptedJudge
from skillport_contests.models import Contest, ContestEvent, Role, UserContext
from skillport_contests.service import ContestService, ServiceConfig
from skillport_contests.storage.memory_store import InMemoryContestStore

BASE_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now: datetime = start
        self._lock: threading.Lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, **kwargs: float) -> None:
        with self._lock:
            self.now += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Keeps every event for assertions."""

    def __init__(self):
        self.events: list[ContestEvent] = []

    def notify(self, event: ContestEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]


def contest_payload(**overrides: Any) -> dict[str, Any]:
    """Valid creation payload for community c1, two problems, python/cpp only."""
    payload: dict[str, Any] = {
        "title": "Spring Sprint",
        "description": "Warm-up round",
        "community_id": "c1",
        "registration_start": BASE_TIME + timedelta(hours=1),
        "registration_end": BASE_TIME + timedelta(days=1),
        "start_time": BASE_TIME + timedelta(days=1),
        "end_time": BASE_TIME + timedelta(days=1, hours=2),
        "max_participants": 10,
        "mentor_id": "mentor-1",
        "rules": {"allowed_languages": ["python", "cpp"]},
        "problems": [
            {"problem_id": "P1", "title": "Two Sum", "points": 100},
            {
                "problem_id": "P2",
                "title": "Grid Paths",
                "points": 200,
                "difficulty": "hard",
                "test_cases": [
                    {"input": "2 2", "expected_output": "2", "hidden": False},
                    {"input": "10 10", "expected_output": "48620"},
                ],
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryContestStore:
    return InMemoryContestStore()


@pytest.fixture
def judge() -> ScriptedJudge:
    return ScriptedJudge()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config() -> ServiceConfig:
    return ServiceConfig(transient_backoff=0.0, lock_timeout=2.0)


@pytest.fixture
def service(
    store: InMemoryContestStore,
    judge: ScriptedJudge,
    notifier: RecordingNotifier,
    config: ServiceConfig,
    clock: FakeClock,
) -> ContestService:
    return ContestService(store, judge=judge, notifier=notifier, config=config, clock=clock)


@pytest.fixture
def api(service: ContestService) -> ContestAPI:
    return ContestAPI(service)


@pytest.fixture
def admin() -> UserContext:
    return UserContext("admin-1", Role.COMMUNITY_ADMIN, "c1", display_name="Ada Admin", email="ada@example.com")


@pytest.fixture
def mentor() -> UserContext:
    return UserContext("mentor-1", Role.MENTOR, "c1", display_name="Max Mentor")


@pytest.fixture
def other_mentor() -> UserContext:
    return UserContext("mentor-2", Role.MENTOR, "c1", display_name="Mia Mentor")


@pytest.fixture
def alice() -> UserContext:
    return UserContext("alice", Role.STUDENT, "c1", batch="2025", display_name="Alice", email="alice@example.com")


@pytest.fixture
def bob() -> UserContext:
    return UserContext("bob", Role.STUDENT, "c1", batch="2025", display_name="Bob", email="bob@example.com")


@pytest.fixture
def carol() -> UserContext:
    return UserContext("carol", Role.STUDENT, "c1", batch="2024", display_name="Carol", email="carol@example.com")


@pytest.fixture
def outsider() -> UserContext:
    return UserContext("eve", Role.STUDENT, "c2", batch="2025", display_name="Eve")


@pytest.fixture
def make_contest(service: ContestService, admin: UserContext) -> Callable[..., Contest]:
    """Create a draft contest as the community admin."""

    def factory(**overrides: Any) -> Contest:
        return service.create_contest(contest_payload(**overrides), admin)

    return factory


@pytest.fixture
def active_contest(
    service: ContestService,
    make_contest: Callable[..., Contest],
    admin: UserContext,
    alice: UserContext,
    bob: UserContext,
) -> Contest:
    """Published, started contest with alice and bob joined."""
    contest = make_contest()
    service.publish_contest(contest.contest_id, admin)
    service.join_contest(contest.contest_id, alice)
    service.join_contest(contest.contest_id, bob)
    return service.start_contest(contest.contest_id, admin)
