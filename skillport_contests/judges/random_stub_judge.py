"""
Random stub judge.

Flips a coin for every submission. Only meant for demos and tests; it never
looks at the code.
"""

import random
import threading

from typing_extensions import override

from ..interfaces import JudgePolicy
from ..logging_config import get_logger
from ..models import Problem, SubmissionStatus, Verdict

# Module-level logger
logger = get_logger("random_stub_judge")


class RandomStubJudge(JudgePolicy):
    """
    Stub judge returning accepted or wrong_answer at random.

    Uses its own Random instance so a seed gives a reproducible sequence
    without touching the global random state.
    """

    def __init__(self, seed: int | None = None, accept_probability: float = 0.5):
        """
        Initialize random stub judge.

        Args:
            seed: Random seed for reproducible verdicts (None = nondeterministic)
            accept_probability: Chance of an accepted verdict (0-1)
        """
        if not 0.0 <= accept_probability <= 1.0:
            raise ValueError(
                f"accept_probability must be between 0 and 1, got {accept_probability}"
            )
        self.seed: int | None = seed
        self.accept_probability: float = accept_probability
        self.judge_id: str = "random_stub"
        self._random: random.Random = random.Random(seed)
        self._lock: threading.Lock = threading.Lock()

    @override
    def judge(self, problem: Problem, code: str, language: str) -> Verdict:
        with self._lock:
            roll = self._random.random()
        status = (
            SubmissionStatus.ACCEPTED
            if roll < self.accept_probability
            else SubmissionStatus.WRONG_ANSWER
        )
        logger.debug(f"Stub verdict for {problem.problem_id} ({language}): {status.value}")
        return Verdict(
            status=status,
            judge_id=self.judge_id,
            detail=f"Random stub verdict (p_accept={self.accept_probability})",
        )
