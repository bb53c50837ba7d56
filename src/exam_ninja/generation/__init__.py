"""
Question generation for exam-ninja

Prompt construction and strict parsing of AI-generated question sets.
"""

from .generator import QuestionGenerator, GenerationError
from .prompts import format_quiz_prompt, format_quiz_system

__all__ = [
    "QuestionGenerator",
    "GenerationError",
    "format_quiz_prompt",
    "format_quiz_system",
]
