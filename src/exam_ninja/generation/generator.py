"""
Question generator

Asks a model provider for an exam question set and turns the response into
validated Question values. Malformed questions never reach the game: they
are repaired where the fix is unambiguous and dropped otherwise.

Uses the provider's structured output first, with fallback to a JSON prompt.
"""

import json
import logging
import re
import time
from typing import Any, Optional

from ..config import config
from ..providers.base import ModelProvider, ModelResponse, ProviderError, StructuredOutputError
from ..providers.quiz_format import quiz_items
from ..quiz.schema import Question, QuestionType, Difficulty
from .prompts import format_quiz_system, format_quiz_prompt

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "type", "text", "correctAnswer", "explanation")


class GenerationError(Exception):
    """The question set could not be generated or failed validation."""
    pass


class QuestionGenerator:
    """
    Generates exam question sets with an AI provider.

    The generator owns the boundary between free-form model output and the
    strictly typed Question model used by the game engine.
    """

    def __init__(
        self,
        provider: ModelProvider,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        """
        Initialize generator.

        Args:
            provider: AI model provider
            model: Optional model override
            temperature: Sampling temperature (defaults to config)
            max_tokens: Response budget (defaults to config)
        """
        self.provider = provider
        self.model = model
        self.temperature = temperature if temperature is not None else config.generation.temperature
        self.max_tokens = max_tokens or config.generation.max_tokens
        self.last_usage: dict = {}

    async def generate(
        self,
        topic: str,
        exam_type: str,
        difficulty: Difficulty,
        count: int,
    ) -> list[Question]:
        """
        Generate a validated question set.

        Args:
            topic: What to study (non-empty)
            exam_type: Exam pattern (GATE, SSC, UPSC, General)
            difficulty: Question difficulty
            count: Number of questions wanted (positive)

        Returns:
            Between 1 and `count` questions, in the order the model wrote them

        Raises:
            ValueError: On invalid arguments
            GenerationError: When the provider fails or no valid question
                comes back
        """
        if not topic or not topic.strip():
            raise ValueError("topic must be a non-empty string")
        if count < 1:
            raise ValueError("count must be a positive integer")

        topic = topic.strip()
        difficulty_label = difficulty.value if isinstance(difficulty, Difficulty) else str(difficulty)
        system = format_quiz_system(topic, exam_type, difficulty_label, count)

        try:
            items = await self._request_items(topic, exam_type, difficulty_label, count, system)
        except ProviderError as e:
            raise GenerationError(f"Failed to generate questions: {e}") from e

        questions = self._build_questions(items, topic)

        if not questions:
            raise GenerationError("Model returned no valid questions")

        if len(questions) > count:
            logger.warning(f"Model returned {len(questions)} questions, keeping the first {count}")
            questions = questions[:count]
        elif len(questions) < count:
            logger.warning(f"Model returned {len(questions)} of {count} requested questions")

        return questions

    async def _request_items(
        self,
        topic: str,
        exam_type: str,
        difficulty: str,
        count: int,
        system: str,
    ) -> list[Any]:
        """Ask the provider for raw question dicts."""
        try:
            response = await self.provider.generate_quiz(
                format_quiz_prompt(topic, exam_type, difficulty, count),
                system=system,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except StructuredOutputError as e:
            logger.warning(f"Structured output failed, falling back to JSON prompt: {e}")
            return await self._generate_with_fallback(topic, exam_type, difficulty, count, system)

        self._record_usage(response)
        logger.debug(f"{self.provider.name} returned {len(response.items)} structured questions")
        return response.items

    async def _generate_with_fallback(
        self,
        topic: str,
        exam_type: str,
        difficulty: str,
        count: int,
        system: str,
    ) -> list[Any]:
        """
        Generate questions using a plain JSON prompt (fallback method).
        """
        response = await self.provider.generate(
            format_quiz_prompt(topic, exam_type, difficulty, count, include_format=True),
            system=system,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        self._record_usage(response)

        return self._parse_content(response.content)

    def _record_usage(self, response: ModelResponse) -> None:
        self.last_usage = {
            "input_tokens": response.input_tokens,
            "output_tokens": response.output_tokens,
        }

    def _parse_content(self, content: str) -> list[Any]:
        """
        Parse question dicts from model text.

        Accepts {"quiz": [...]} (optionally wrapped in prose or code fences)
        or a bare JSON array.
        """
        json_match = re.search(r"[\{\[][\s\S]*[\}\]]", content or "")
        if not json_match:
            raise GenerationError("Model response contained no JSON")

        try:
            data = json.loads(json_match.group())
        except json.JSONDecodeError as e:
            raise GenerationError(f"Model response was not valid JSON: {e}") from e

        try:
            return quiz_items(data)
        except ValueError as e:
            raise GenerationError(f"Model response unusable: {e}") from e

    def _build_questions(self, items: list[Any], topic: str) -> list[Question]:
        """Validate every item, dropping the ones that can't be repaired."""
        stamp = int(time.time() * 1000)
        questions = []

        for index, item in enumerate(items):
            try:
                questions.append(self._parse_question(item, f"q-{stamp}-{index}", topic))
            except ValueError as e:
                logger.warning(f"Dropping generated question {index}: {e}")

        return questions

    def _parse_question(self, data: Any, question_id: str, topic: str) -> Question:
        """
        Parse and validate a single question dict.

        The model's own id is replaced so ids are unique within a session.

        Raises:
            ValueError: If the question is malformed
        """
        if not isinstance(data, dict):
            raise ValueError("question is not an object")

        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "", [])]
        if missing:
            raise ValueError(f"missing required fields: {', '.join(missing)}")

        try:
            q_type = QuestionType(str(data["type"]).strip().upper())
        except ValueError:
            raise ValueError(f"unknown question type: {data['type']!r}")

        text = str(data["text"]).strip()
        explanation = str(data["explanation"]).strip()
        correct = _as_strings(data["correctAnswer"])
        if not text or not correct:
            raise ValueError("empty text or correct answer")

        if q_type == QuestionType.NAT:
            if len(correct) != 1:
                raise ValueError(f"NAT question needs exactly one answer, got {len(correct)}")
            options: list[str] = []
        else:
            options = _as_strings(data.get("options") or [])
            if len(options) < 2:
                raise ValueError(f"{q_type.value} question needs at least two options")
            if len(set(options)) != len(options):
                raise ValueError("duplicate options")
            unknown = [c for c in correct if c not in options]
            if unknown:
                raise ValueError(f"correct answers not among options: {unknown}")
            if q_type == QuestionType.MCQ and len(set(correct)) != 1:
                raise ValueError(f"MCQ question needs exactly one answer, got {len(correct)}")
            # MSQ answers are a set
            correct = list(dict.fromkeys(correct))

        return Question(
            id=question_id,
            type=q_type,
            text=text,
            options=tuple(options),
            correct_answer=tuple(correct),
            explanation=explanation,
            topic=topic,
        )


def _as_strings(value: Any) -> list[str]:
    """Coerce a JSON value into a list of stripped strings (numbers included)."""
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"expected a list, got {type(value).__name__}")

    result = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ValueError(f"expected strings, got {item!r}")
        text = str(item).strip()
        if text:
            result.append(text)
    return result
