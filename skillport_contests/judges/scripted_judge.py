"""
Scripted judge implementation.

Replays a fixed sequence of verdicts, for deterministic tests and demos.
"""

import threading
from collections import deque
from collections.abc import Iterable

from typing_extensions import override

from ..interfaces import JudgePolicy
from ..models import Problem, SubmissionStatus, Verdict


class ScriptedJudge(JudgePolicy):
    """
    Judge that returns queued outcomes in order.

    Once the queue is empty every submission gets the fallback status.
    """

    def __init__(
        self,
        outcomes: Iterable[SubmissionStatus | str] = (),
        fallback: SubmissionStatus | str = SubmissionStatus.ACCEPTED,
    ):
        """
        Initialize scripted judge.

        Args:
            outcomes: Verdicts to hand out, first to last
            fallback: Verdict used after the queue runs out
        """
        self._queue: deque[SubmissionStatus] = deque(
            SubmissionStatus(outcome) for outcome in outcomes
        )
        self.fallback: SubmissionStatus = SubmissionStatus(fallback)
        self.judge_id: str = "scripted"
        self.calls: int = 0
        self._lock: threading.Lock = threading.Lock()

    def push(self, *outcomes: SubmissionStatus | str) -> None:
        """Queue more verdicts."""
        with self._lock:
            self._queue.extend(SubmissionStatus(outcome) for outcome in outcomes)

    @override
    def judge(self, problem: Problem, code: str, language: str) -> Verdict:
        with self._lock:
            self.calls += 1
            status = self._queue.popleft() if self._queue else self.fallback
        return Verdict(
            status=status,
            judge_id=self.judge_id,
            detail=f"Scripted verdict #{self.calls} for {problem.problem_id}",
        )

    def remaining(self) -> int:
        return len(self._queue)
