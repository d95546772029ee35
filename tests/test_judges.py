"""
Tests for judge policies.

Focus on reproducibility of the stub judges.
"""

import pytest

from skillport_contests.judges.random_stub_judge import RandomStubJudge
from skillport_contests.judges.scripted_judge import ScriptedJudge
from skillport_contests.models import Problem, SubmissionStatus

PROBLEM = Problem("P1", "Two Sum")


class TestRandomStubJudge:
    """Test RandomStubJudge behavior through public interface."""

    def test_same_seed_same_verdicts(self):
        """Two judges with the same seed should agree on every verdict."""
        # Arrange
        first = RandomStubJudge(seed=7)
        second = RandomStubJudge(seed=7)

        # Act
        a = [first.judge(PROBLEM, "x", "python").status for _ in range(20)]
        b = [second.judge(PROBLEM, "x", "python").status for _ in range(20)]

        # Assert
        assert a == b, "Seeded judges should be reproducible"
        assert set(a) == {SubmissionStatus.ACCEPTED, SubmissionStatus.WRONG_ANSWER}

    def test_probability_extremes(self):
        always = RandomStubJudge(seed=1, accept_probability=1.0)
        never = RandomStubJudge(seed=1, accept_probability=0.0)

        assert all(always.judge(PROBLEM, "x", "py").accepted for _ in range(10))
        assert not any(never.judge(PROBLEM, "x", "py").accepted for _ in range(10))

    def test_judge_id(self):
        verdict = RandomStubJudge(seed=3).judge(PROBLEM, "x", "python")

        assert verdict.judge_id == "random_stub"

    @pytest.mark.parametrize("probability", [-0.1, 1.5])
    def test_invalid_probability(self, probability: float):
        with pytest.raises(ValueError):
            _ = RandomStubJudge(accept_probability=probability)


class TestScriptedJudge:
    def test_replays_queue_then_fallback(self):
        # Arrange
        judge = ScriptedJudge(["wrong_answer", SubmissionStatus.ACCEPTED], fallback="wrong_answer")

        # Act
        statuses = [judge.judge(PROBLEM, "x", "python").status for _ in range(3)]

        # Assert
        assert statuses == [
            SubmissionStatus.WRONG_ANSWER,
            SubmissionStatus.ACCEPTED,
            SubmissionStatus.WRONG_ANSWER,
        ]
        assert judge.calls == 3
        assert judge.remaining() == 0

    def test_push_extends_queue(self):
        judge = ScriptedJudge()
        judge.push(SubmissionStatus.WRONG_ANSWER)

        assert judge.remaining() == 1
        assert judge.judge(PROBLEM, "x", "python").status is SubmissionStatus.WRONG_ANSWER
        assert judge.judge(PROBLEM, "x", "python").status is SubmissionStatus.ACCEPTED

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            _ = ScriptedJudge(["time_limit_exceeded"])
