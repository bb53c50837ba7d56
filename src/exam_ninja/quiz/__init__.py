"""
Quiz data model for exam-ninja

Questions, quiz configuration, and per-question answer records.
"""

from .schema import (
    Question,
    QuestionType,
    Difficulty,
    ExamType,
    QuizConfig,
    AnswerRecord,
    questions_to_json,
)

__all__ = [
    "Question",
    "QuestionType",
    "Difficulty",
    "ExamType",
    "QuizConfig",
    "AnswerRecord",
    "questions_to_json",
]
