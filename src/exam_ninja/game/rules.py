"""
Answer evaluation and scoring rules

Pure functions shared by the round engine and its tests. Nothing here
touches timers or session state.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import GameConfig, config
from ..quiz.schema import Question, QuestionType


@dataclass(frozen=True)
class ScoreUpdate:
    """Score, streak and combo after one submission."""
    points: float  # signed change applied to the score
    score: float
    streak: int
    combo_multiplier: float


def evaluate_answer(question: Question, selection: Sequence[str]) -> bool:
    """
    Decide whether a final selection answers the question correctly.

    NAT compares the trimmed input to the canonical answer as plain strings,
    so "42.0" does not match "42". MSQ needs the exact set of correct
    options. MCQ needs its single selected option in the correct set.
    """
    if question.type == QuestionType.NAT:
        if len(selection) != 1:
            return False
        return selection[0].strip() == question.correct_answer[0]

    if question.type == QuestionType.MSQ:
        return set(selection) == set(question.correct_answer)

    if len(selection) != 1:
        return False
    return selection[0] in question.correct_answer


def score_answer(
    question_type: QuestionType,
    is_correct: bool,
    time_left: float,
    score: float,
    streak: int,
    combo_multiplier: float,
    game: Optional[GameConfig] = None,
) -> ScoreUpdate:
    """
    Apply one submission to the running score.

    Correct: (base + floor(bonus * time_left)) * combo, streak + 1, combo
    grows by one step up to the cap. Incorrect: streak and combo reset;
    MCQ additionally loses a flat penalty, never dropping below zero.
    """
    game = game or config.game

    if is_correct:
        points = (game.base_points + math.floor(game.time_bonus_per_unit * time_left)) * combo_multiplier
        # round() keeps repeated 0.2 steps from drifting (1.2000000000000002)
        combo = round(min(combo_multiplier + game.combo_step, game.combo_cap), 6)
        return ScoreUpdate(
            points=points,
            score=score + points,
            streak=streak + 1,
            combo_multiplier=combo,
        )

    new_score = score
    if question_type == QuestionType.MCQ:
        new_score = max(0.0, score - game.mcq_penalty)

    return ScoreUpdate(
        points=new_score - score,
        score=new_score,
        streak=0,
        combo_multiplier=1.0,
    )
