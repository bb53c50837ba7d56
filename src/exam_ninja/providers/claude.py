"""
Claude (Anthropic) provider

Question sets come back through a forced `submit_quiz` tool call, so the
model fills the quiz schema instead of writing prose around it.
"""

import os
from typing import Optional

import anthropic

from .base import (
    ModelProvider, ModelResponse, QuizResponse, ProviderError, RateLimitError,
    AuthenticationError, StructuredOutputError
)
from .quiz_format import QUIZ_TOOL_NAME, anthropic_quiz_tool, quiz_items


class ClaudeProvider(ModelProvider):
    """
    Anthropic Claude provider.

    API key comes from the constructor or ANTHROPIC_API_KEY.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "claude-sonnet-4-20250514",
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self._default_model = default_model
        self._client: Optional[anthropic.AsyncAnthropic] = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "No Anthropic API key provided. Set ANTHROPIC_API_KEY or pass api_key to constructor."
                )
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    @property
    def name(self) -> str:
        return "claude"

    @property
    def default_model(self) -> str:
        return self._default_model

    async def _create(self, prompt, system, model, max_tokens, temperature, **extra):
        request = {
            "model": model or self._default_model,
            "max_tokens": max_tokens,
            # Anthropic caps temperature at 1.0
            "temperature": min(1.0, max(0.0, temperature)),
            "messages": [{"role": "user", "content": prompt}],
            **extra,
        }
        if system:
            request["system"] = system

        client = self._get_client()
        try:
            return await client.messages.create(**request)
        except anthropic.RateLimitError as e:
            raise RateLimitError(f"Claude rate limit exceeded: {e}") from e
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AuthenticationError(f"Claude authentication failed: {e}") from e
        except anthropic.APIError as e:
            raise ProviderError(f"Claude API error: {e}") from e

    @staticmethod
    def _usage(message) -> dict:
        return {
            "input_tokens": message.usage.input_tokens,
            "output_tokens": message.usage.output_tokens,
        }

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ModelResponse:
        message = await self._create(prompt, system, model, max_tokens, temperature)
        text = "".join(block.text for block in message.content if block.type == "text")

        return ModelResponse(
            content=text,
            model=message.model,
            provider=self.name,
            usage=self._usage(message),
            raw_response=message,
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
        message = await self._create(
            prompt, system, model, max_tokens, temperature,
            tools=[anthropic_quiz_tool()],
            tool_choice={"type": "tool", "name": QUIZ_TOOL_NAME},
        )

        tool_use = next(
            (b for b in message.content if b.type == "tool_use" and b.name == QUIZ_TOOL_NAME),
            None,
        )
        if tool_use is None:
            raise StructuredOutputError(f"Claude did not call {QUIZ_TOOL_NAME} (stop: {message.stop_reason})")
        try:
            items = quiz_items(tool_use.input)
        except ValueError as e:
            raise StructuredOutputError(f"Claude quiz tool input unusable: {e}") from e

        return QuizResponse(
            content="",
            model=message.model,
            provider=self.name,
            usage=self._usage(message),
            raw_response=message,
            items=items,
        )

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None
