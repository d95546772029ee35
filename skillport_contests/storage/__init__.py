"""
Storage implementations.

Provides implementations of the ContestStore interface for persisting contest
aggregates as single documents.

Available implementations:
- InMemoryContestStore: Keeps documents in a dict (tests, demos, single process)
- JSONContestStore: One JSON file per contest plus an events JSONL write log
"""

from .json_store import JSONContestStore
from .memory_store import InMemoryContestStore

__all__ = ["InMemoryContestStore", "JSONContestStore"]
