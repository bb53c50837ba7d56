"""
AI model providers for exam-ninja

Supports multiple AI providers with a common interface.
Providers: Gemini (Google), Claude (Anthropic), DeepSeek, and a mock for tests
"""

from .base import (
    ModelProvider, ModelResponse, QuizResponse, ProviderError, RateLimitError,
    AuthenticationError, StructuredOutputError
)
from .claude import ClaudeProvider
from .gemini import GeminiProvider
from .deepseek import DeepSeekProvider
from .mock import MockProvider
from .quiz_format import QUIZ_SCHEMA, quiz_items

__all__ = [
    # Base classes and types
    "ModelProvider",
    "ModelResponse",
    "QuizResponse",
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "StructuredOutputError",
    # Providers
    "ClaudeProvider",
    "GeminiProvider",
    "DeepSeekProvider",
    "MockProvider",
    # Quiz format
    "QUIZ_SCHEMA",
    "quiz_items",
    "get_provider",
]


def get_provider(name: str, **kwargs) -> ModelProvider:
    """
    Factory function to get a provider by name.

    Args:
        name: Provider name ('claude', 'gemini', 'deepseek', 'mock')
        **kwargs: Provider-specific options

    Returns:
        Configured ModelProvider instance

    Raises:
        ValueError: If provider name is unknown
    """
    providers = {
        "claude": ClaudeProvider,
        "gemini": GeminiProvider,
        "deepseek": DeepSeekProvider,
        "mock": MockProvider,
    }

    if name not in providers:
        raise ValueError(f"Unknown provider: {name}. Valid options: {list(providers.keys())}")

    return providers[name](**kwargs)
