"""
Base protocol for AI model providers

Every provider answers two kinds of request: free text, and a question set
in the quiz format (see quiz_format.py). The question generator prefers the
structured path and falls back to parsing text when a backend can't honor it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class RateLimitError(ProviderError):
    """Rate limit exceeded."""
    pass


class AuthenticationError(ProviderError):
    """Missing or rejected API key."""
    pass


class StructuredOutputError(ProviderError):
    """The model replied, but not with a readable quiz payload."""
    pass


@dataclass
class ModelResponse:
    """Text response from an AI model."""
    content: str
    model: str
    provider: str
    usage: dict = field(default_factory=dict)
    raw_response: Optional[Any] = None

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class QuizResponse(ModelResponse):
    """A question set returned through a provider's structured output."""
    items: list = field(default_factory=list)  # raw question dicts, not yet validated


class ModelProvider(ABC):
    """
    Abstract base class for AI model providers.

    Subclasses implement generate() for plain text and generate_quiz() using
    whatever structured-output feature their API offers.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'gemini', 'claude')."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ModelResponse:
        """
        Generate a free-text response.

        Raises:
            ProviderError: On API errors
            RateLimitError: When rate limited
            AuthenticationError: On auth failures
        """
        pass

    @abstractmethod
    async def generate_quiz(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> QuizResponse:
        """
        Generate a question set constrained to QUIZ_SCHEMA.

        Returns:
            QuizResponse whose items are the unvalidated question dicts

        Raises:
            StructuredOutputError: If the reply can't be read as a quiz
            ProviderError: On API errors
        """
        pass

    async def close(self):
        """Release any network clients held by the provider."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.default_model!r})"
