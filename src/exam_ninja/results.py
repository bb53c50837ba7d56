"""
Session results

Summarizes a finished quiz: score, accuracy, timing per question, and a
review of every question with the user's answer and the explanation.
"""

from dataclasses import dataclass
from typing import Optional

from .quiz.schema import AnswerRecord, Question


@dataclass
class QuestionReview:
    """One question next to what the user answered."""
    number: int
    question: Question
    answer: Optional[AnswerRecord]

    @property
    def is_correct(self) -> bool:
        return bool(self.answer and self.answer.is_correct)

    @property
    def your_answer(self) -> str:
        if self.answer is None or not any(self.answer.selected_options):
            return "(Skipped)"
        return ", ".join(self.answer.selected_options)

    @property
    def correct_answer(self) -> str:
        return ", ".join(self.question.correct_answer)


@dataclass
class SessionReport:
    """Aggregate view of a completed session."""
    questions: list[Question]
    answers: list[AnswerRecord]
    score: float

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)

    @property
    def accuracy(self) -> int:
        """Percentage of questions answered correctly, rounded."""
        if not self.questions:
            return 0
        return round(self.correct_count / self.total_questions * 100)

    @property
    def average_time(self) -> int:
        """Mean seconds per question, rounded."""
        if not self.questions:
            return 0
        return round(sum(a.time_taken for a in self.answers) / self.total_questions)

    def chart_data(self) -> list[dict]:
        """Per-question timing rows, the series a bar chart plots."""
        return [
            {"name": f"Q{i + 1}", "time": a.time_taken, "isCorrect": a.is_correct}
            for i, a in enumerate(self.answers)
        ]

    def reviews(self) -> list[QuestionReview]:
        answers_by_id = {a.question_id: a for a in self.answers}
        return [
            QuestionReview(number=i + 1, question=q, answer=answers_by_id.get(q.id))
            for i, q in enumerate(self.questions)
        ]

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "accuracy": self.accuracy,
            "average_time": self.average_time,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
            "chart": self.chart_data(),
            "answers": [a.to_dict() for a in self.answers],
        }

    @classmethod
    def from_session(cls, session) -> "SessionReport":
        """Build a report from a QuizSession showing results."""
        return cls(
            questions=list(session.questions),
            answers=list(session.answers),
            score=session.score,
        )


def format_report_terminal(report: SessionReport, width: int = 64) -> str:
    """
    Format a session report for terminal display with box-drawing characters.

    Args:
        report: The finished session
        width: Inner width of the box

    Returns:
        Formatted string for terminal display
    """
    def row(text: str = "") -> str:
        return f"│  {text[:width - 4]:<{width - 4}}│"

    lines = [
        "┌" + "─" * (width - 2) + "┐",
        row(),
        row("SESSION COMPLETE"),
        row("════════════════"),
        row(),
        row(f"Total Score: {round(report.score)}"),
        row(f"Accuracy:    {report.accuracy}%"),
        row(f"Avg. Time:   {report.average_time}s"),
        row(f"Questions:   {report.total_questions}"),
        row(),
        row("SPEED & PERFORMANCE"),
        row(),
    ]

    for entry in report.chart_data():
        bar = "█" * int(entry["time"])
        mark = "✓" if entry["isCorrect"] else "✗"
        lines.append(row(f"{entry['name']:<4} {mark} {bar} {entry['time']}s"))

    lines.extend([row(), row("DETAILED REVIEW"), row()])

    for review in report.reviews():
        status = "Correct" if review.is_correct else "Incorrect"
        lines.append(row(f"Q{review.number} [{review.question.type.value}] {status}"))
        lines.append(row(f"  {review.question.text}"))
        lines.append(row(f"  Your answer:    {review.your_answer}"))
        lines.append(row(f"  Correct answer: {review.correct_answer}"))
        lines.append(row(f"  {review.question.explanation}"))
        lines.append(row())

    lines.append("└" + "─" * (width - 2) + "┘")
    return "\n".join(lines)
