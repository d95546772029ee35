"""
Ranker implementations.

Provides implementations of the LeaderboardRanker interface for ordering a
contest's participants.

Available implementations:
- ScoreRanker: Score descending, then fewer submissions, then earliest time the
  score was reached, then join time and user id
- CachedRanker: Wraps another ranker and caches its output per contest version
"""

from .leaderboard_ranker import CachedRanker, ScoreRanker

__all__ = ["CachedRanker", "ScoreRanker"]
