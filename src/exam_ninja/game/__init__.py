"""
Game core for exam-ninja

The session lifecycle and the timed round engine.
"""

from .engine import RoundEngine
from .rules import ScoreUpdate, evaluate_answer, score_answer
from .session import (
    QuizSession,
    SessionStatus,
    SessionError,
    InvalidTransitionError,
    GENERATION_FAILED_NOTICE,
)

__all__ = [
    "RoundEngine",
    "ScoreUpdate",
    "evaluate_answer",
    "score_answer",
    "QuizSession",
    "SessionStatus",
    "SessionError",
    "InvalidTransitionError",
    "GENERATION_FAILED_NOTICE",
]
