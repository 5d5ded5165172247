from inspect_ai.scorer import (
    CORRECT,
    INCORRECT,
    Score,
    Scorer,
    Target,
    accuracy,
    mean,
    scorer,
)
from inspect_ai.solver import TaskState

from src.game.base import CompletionResult


def _completion_result(state: TaskState) -> CompletionResult:
    return CompletionResult.from_json(state.metadata["puzzle_result_json"])


@scorer(metrics=[accuracy()])
def game_won_scorer() -> Scorer:

    async def score(state: TaskState, target: Target) -> Score:
        completion_result = _completion_result(state)
        return Score(value = CORRECT if completion_result.solved else INCORRECT,
            explanation = f"Game ended: {completion_result.termination_reason}")

    return score


@scorer(metrics=[mean()])
def moves_used_scorer() -> Scorer:

    async def score(state: TaskState, target: Target) -> Score:
        completion_result = _completion_result(state)
        return Score(value = completion_result.move_count, explanation = \
            f"Used {completion_result.move_count} moves, minimum is {completion_result.min_moves}")

    return score


@scorer(metrics=[mean()])
def turns_taken_scorer() -> Scorer:

    async def score(state: TaskState, target: Target) -> Score:
        completion_result = _completion_result(state)
        return Score(value = completion_result.turns_taken, explanation = \
            f"Took {completion_result.turns_taken} turns")

    return score


@scorer(metrics=[mean()])
def invalid_turns_scorer() -> Scorer:

    async def score(state: TaskState, target: Target) -> Score:
        completion_result = _completion_result(state)
        return Score(value = completion_result.invalid_turns, explanation = \
            f"Attempted {completion_result.total_moves_attempted} moves, "
            f"{completion_result.invalid_turns} turns were rejected")

    return score


@scorer(metrics=[mean()])
def move_efficiency_scorer() -> Scorer:
    """Ratio of the optimal move count to the moves actually used (1.0 is optimal)."""

    async def score(state: TaskState, target: Target) -> Score:
        completion_result = _completion_result(state)
        return Score(value = completion_result.efficiency, explanation = \
            f"{completion_result.min_moves} optimal / {completion_result.move_count} used")

    return score
