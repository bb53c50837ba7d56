"""
Quiz schema and data structures

Defines questions, quiz configuration, and answer records.
"""

from dataclasses import dataclass, field
from enum import Enum
import json


class QuestionType(str, Enum):
    """Types of exam questions."""
    MCQ = "MCQ"  # Multiple Choice: exactly one correct option
    MSQ = "MSQ"  # Multiple Select: one or more correct options
    NAT = "NAT"  # Numerical Answer Type: typed answer


class Difficulty(str, Enum):
    """Question difficulty levels."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ExamType(str, Enum):
    """Exam patterns the generator knows how to imitate."""
    GATE = "GATE"
    SSC = "SSC"
    UPSC = "UPSC"
    GENERAL = "General"


@dataclass(frozen=True)
class Question:
    """A single generated exam question. Immutable once generated."""
    id: str
    type: QuestionType
    text: str
    correct_answer: tuple[str, ...]
    explanation: str
    topic: str = ""
    options: tuple[str, ...] = ()

    @property
    def is_choice(self) -> bool:
        """Whether the question is answered by picking options."""
        return self.type in (QuestionType.MCQ, QuestionType.MSQ)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "text": self.text,
            "options": list(self.options),
            "correctAnswer": list(self.correct_answer),
            "explanation": self.explanation,
            "topic": self.topic,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=data["id"],
            type=QuestionType(data["type"]),
            text=data["text"],
            options=tuple(data.get("options") or ()),
            correct_answer=tuple(data["correctAnswer"]),
            explanation=data["explanation"],
            topic=data.get("topic", ""),
        )


@dataclass(frozen=True)
class AnswerRecord:
    """The user's answer to one question."""
    question_id: str
    selected_options: tuple[str, ...]
    is_correct: bool
    time_taken: float  # seconds used before submission

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "selectedOptions": list(self.selected_options),
            "isCorrect": self.is_correct,
            "timeTaken": self.time_taken,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnswerRecord":
        return cls(
            question_id=data["questionId"],
            selected_options=tuple(data.get("selectedOptions", ())),
            is_correct=bool(data["isCorrect"]),
            time_taken=data["timeTaken"],
        )


@dataclass
class QuizConfig:
    """
    What the user asked to be quizzed on.

    Kept by the session so a finished quiz can be replayed with the
    same settings.
    """
    topic: str
    exam_type: str = ExamType.GENERAL.value
    difficulty: Difficulty = Difficulty.MEDIUM
    question_count: int = 5

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        if not self.topic or not self.topic.strip():
            errors.append("Topic is required")

        valid_exams = [e.value for e in ExamType]
        if self.exam_type not in valid_exams:
            errors.append(f"Invalid exam type: {self.exam_type}")

        if not isinstance(self.difficulty, Difficulty):
            errors.append(f"Invalid difficulty: {self.difficulty}")

        if not isinstance(self.question_count, int) or self.question_count < 1:
            errors.append("Question count must be a positive integer")

        return (len(errors) == 0, errors)

    def to_dict(self) -> dict:
        return {
            "topic": self.topic,
            "examType": self.exam_type,
            "difficulty": self.difficulty.value,
            "questionCount": self.question_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuizConfig":
        return cls(
            topic=data["topic"],
            exam_type=data.get("examType", ExamType.GENERAL.value),
            difficulty=Difficulty(data.get("difficulty", Difficulty.MEDIUM.value)),
            question_count=data.get("questionCount", 5),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def questions_to_json(questions: list[Question]) -> str:
    """Serialize a question set (for the `generate` command)."""
    return json.dumps({"quiz": [q.to_dict() for q in questions]}, indent=2)
