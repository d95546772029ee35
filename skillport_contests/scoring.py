"""
Scoring policy: how many points a judged submission is worth.

Only the first accepted submission per problem scores. Wrong answers score
nothing unless the contest charges a penalty, which never takes a score
below zero.
"""

from .models import ContestRules, Participant, Problem, Verdict


def points_for(
    verdict: Verdict, problem: Problem, participant: Participant, rules: ContestRules
) -> int:
    """
    Compute points_awarded for a new submission.

    Args:
        verdict: Judge outcome
        problem: Problem that was attempted
        participant: Participant before the submission is recorded
        rules: Contest rules

    Returns:
        Points to add to the participant's score (negative for a penalty)
    """
    if verdict.accepted:
        if participant.has_solved(problem.problem_id):
            return 0
        return problem.points

    if rules.applies_penalty:
        return -min(rules.penalty_per_wrong_submission, participant.score)
    return 0
