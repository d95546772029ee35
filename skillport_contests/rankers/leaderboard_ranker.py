"""
Leaderboard ranker implementations.

ScoreRanker orders participants by score with a fixed tie-break chain.
CachedRanker memoizes another ranker per contest version.
"""

import threading
from collections.abc import Sequence
from datetime import datetime, timezone

from typing_extensions import override

from ..interfaces import LeaderboardRanker
from ..logging_config import get_logger
from ..models import Contest, Participant, Standing

# Module-level logger
logger = get_logger("leaderboard_ranker")

_NEVER = datetime.max.replace(tzinfo=timezone.utc)


def standing_key(participant: Participant) -> tuple[int, int, datetime, datetime, str]:
    """
    Sort key for a participant.

    Higher score first; then fewer submissions; then whoever last earned points
    earlier (never-scored last); then earlier join; then user id.
    """
    return (
        -participant.score,
        participant.submission_count,
        participant.last_scored_at or _NEVER,
        participant.joined_at,
        participant.user_id,
    )


class ScoreRanker(LeaderboardRanker):
    """Strict, contiguous ranking by score with deterministic tie-breaks."""

    @override
    def rank(self, contest: Contest) -> Sequence[Standing]:
        ordered = sorted(contest.participants.values(), key=standing_key)
        standings = [
            Standing(rank=position, participant=participant)
            for position, participant in enumerate(ordered, 1)
        ]
        logger.debug(f"Ranked {len(standings)} participants of contest {contest.contest_id}")
        return standings


class CachedRanker(LeaderboardRanker):
    """
    Caches the inner ranker's output per (contest_id, version).

    Every successful write bumps the version, so a cached ranking is never
    older than a write that already returned.
    """

    def __init__(self, inner: LeaderboardRanker | None = None, max_entries: int = 256):
        """
        Initialize cached ranker.

        Args:
            inner: Ranker to delegate to (default: ScoreRanker)
            max_entries: Contests kept before the oldest entry is evicted
        """
        self.inner: LeaderboardRanker = inner or ScoreRanker()
        self.max_entries: int = max_entries
        self._cache = dict[str, tuple[int, Sequence[Standing]]]()
        self._lock: threading.Lock = threading.Lock()
        self.hits: int = 0
        self.misses: int = 0

    @override
    def rank(self, contest: Contest) -> Sequence[Standing]:
        with self._lock:
            cached = self._cache.get(contest.contest_id)
            if cached is not None and cached[0] == contest.version:
                self.hits += 1
                return cached[1]
            self.misses += 1

        standings = tuple(self.inner.rank(contest))

        with self._lock:
            self._cache.pop(contest.contest_id, None)
            if len(self._cache) >= self.max_entries:
                oldest = next(iter(self._cache))
                del self._cache[oldest]
            self._cache[contest.contest_id] = (contest.version, standings)
        return standings
