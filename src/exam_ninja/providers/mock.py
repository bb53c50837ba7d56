"""
Mock provider for testing

Returns configurable responses without making API calls. By default it
answers quiz-generation prompts with a small arithmetic question set so the
game can be played end to end offline.
"""

import asyncio
import json
import random
import re
from typing import Optional, Callable
from dataclasses import dataclass

from .base import ModelProvider, ModelResponse, QuizResponse, ProviderError, StructuredOutputError
from .quiz_format import quiz_items


def generate_mock_questions(topic: str = "Arithmetic", count: int = 5) -> list[dict]:
    """
    Generate a deterministic question set in the wire format.

    Cycles MCQ, MSQ, NAT so every question type shows up.

    Args:
        topic: Topic label (only used in question text)
        count: Number of questions to generate

    Returns:
        List of question dicts with correctAnswer arrays
    """
    questions = []

    for i in range(count):
        a, b = 3 + i, 4 + 2 * i
        kind = ("MCQ", "MSQ", "NAT")[i % 3]

        if kind == "MCQ":
            total = a + b
            options = [str(total - 1), str(total), str(total + 1), str(total + 2)]
            questions.append({
                "id": f"mock-{i + 1}",
                "type": "MCQ",
                "text": f"[{topic}] What is {a} + {b}?",
                "options": options,
                "correctAnswer": [str(total)],
                "explanation": f"Adding {a} and {b} gives {total}.",
            })
        elif kind == "MSQ":
            options = [str(n) for n in (a, b, a + b, a * b)]
            evens = [o for o in options if int(o) % 2 == 0]
            if not evens:
                evens = [options[-1]]
            questions.append({
                "id": f"mock-{i + 1}",
                "type": "MSQ",
                "text": f"[{topic}] Which of the following numbers are even?",
                "options": options,
                "correctAnswer": evens,
                "explanation": "A number is even when it is divisible by 2.",
            })
        else:
            questions.append({
                "id": f"mock-{i + 1}",
                "type": "NAT",
                "text": f"[{topic}] Compute {a} x {b}.",
                "options": [],
                "correctAnswer": [str(a * b)],
                "explanation": f"{a} multiplied by {b} is {a * b}.",
            })

    return questions


@dataclass
class MockProvider(ModelProvider):
    """
    Mock provider for testing.

    Can be configured with custom response generators or fixed responses.
    """

    _name: str = "mock"
    _default_model: str = "mock-model-v1"
    fixed_response: Optional[str] = None
    response_generator: Optional[Callable[[str], str]] = None
    delay_seconds: float = 0.0
    fail_rate: float = 0.0  # Probability of raising an error
    token_count: int = 100
    structured: bool = True  # False makes generate_quiz() refuse, forcing the text fallback

    @property
    def name(self) -> str:
        return self._name

    @property
    def default_model(self) -> str:
        return self._default_model

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ModelResponse:
        """Generate a mock response."""
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        if self.fail_rate > 0 and random.random() < self.fail_rate:
            raise ProviderError("Simulated mock provider failure")

        if self.fixed_response is not None:
            content = self.fixed_response
        elif self.response_generator is not None:
            content = self.response_generator(prompt)
        else:
            content = self._default_response(prompt)

        return ModelResponse(
            content=content,
            model=model or self._default_model,
            provider=self.name,
            usage={
                "input_tokens": len(prompt.split()) * 2,
                "output_tokens": self.token_count,
            },
        )

    async def generate_quiz(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> QuizResponse:
        """Return the mock reply decoded as a quiz payload."""
        if not self.structured:
            raise StructuredOutputError("Mock provider configured without structured output")

        response = await self.generate(prompt, system=system, model=model)
        try:
            items = quiz_items(json.loads(response.content))
        except ValueError as e:
            raise StructuredOutputError(f"Mock reply is not a quiz payload: {e}") from e

        return QuizResponse(
            content=response.content,
            model=response.model,
            provider=response.provider,
            usage=response.usage,
            items=items,
        )

    def _default_response(self, prompt: str) -> str:
        """Answer a quiz prompt with mock questions sized from the prompt."""
        count = 5
        count_match = re.search(r"Generate (\d+)", prompt)
        if count_match:
            count = int(count_match.group(1))

        topic = "Arithmetic"
        topic_match = re.search(r"questions for (.+?) focusing on", prompt)
        if topic_match:
            topic = topic_match.group(1)

        return json.dumps({"quiz": generate_mock_questions(topic, count)}, indent=2)


def create_quiz_mock(questions: list[dict], delay_seconds: float = 0.0) -> MockProvider:
    """Create a mock provider that always returns the given question dicts."""
    return MockProvider(
        fixed_response=json.dumps({"quiz": questions}),
        delay_seconds=delay_seconds,
    )
