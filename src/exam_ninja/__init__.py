"""
exam-ninja

AI-generated competitive exam practice: a question generator backed by
Gemini, Claude or DeepSeek, and a timed quiz game with streaks, combo
multipliers and a results report.
"""

__version__ = "0.1.0"

from .config import Config, config
from .quiz.schema import (
    Question,
    QuestionType,
    Difficulty,
    ExamType,
    QuizConfig,
    AnswerRecord,
)
from .generation.generator import QuestionGenerator, GenerationError
from .game.engine import RoundEngine
from .game.session import QuizSession, SessionStatus
from .results import SessionReport, format_report_terminal

__all__ = [
    # Config
    "Config",
    "config",
    # Quiz model
    "Question",
    "QuestionType",
    "Difficulty",
    "ExamType",
    "QuizConfig",
    "AnswerRecord",
    # Generation
    "QuestionGenerator",
    "GenerationError",
    # Game
    "RoundEngine",
    "QuizSession",
    "SessionStatus",
    # Results
    "SessionReport",
    "format_report_terminal",
]
