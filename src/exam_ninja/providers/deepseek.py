"""
DeepSeek provider

DeepSeek speaks the OpenAI chat-completions protocol, so this goes through
the openai SDK with a different base_url. Question sets are requested as a
forced `submit_quiz` function call whose arguments are JSON text.
"""

import json
import os
from typing import Optional

import openai

from .base import (
    ModelProvider, ModelResponse, QuizResponse, ProviderError, RateLimitError,
    AuthenticationError, StructuredOutputError
)
from .quiz_format import QUIZ_TOOL_NAME, openai_quiz_tool, quiz_items


class DeepSeekProvider(ModelProvider):
    """
    DeepSeek provider.

    API key comes from the constructor or DEEPSEEK_API_KEY. Any other
    OpenAI-compatible endpoint works by passing base_url.
    """

    BASE_URL = "https://api.deepseek.com"

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "deepseek-chat",
        base_url: Optional[str] = None,
    ):
        self._api_key = api_key or os.getenv("DEEPSEEK_API_KEY")
        self._default_model = default_model
        self._base_url = base_url or self.BASE_URL
        self._client: Optional[openai.AsyncOpenAI] = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "No DeepSeek API key provided. Set DEEPSEEK_API_KEY or pass api_key to constructor."
                )
            self._client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    @property
    def name(self) -> str:
        return "deepseek"

    @property
    def default_model(self) -> str:
        return self._default_model

    async def _complete(self, prompt, system, model, max_tokens, temperature, **extra):
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})

        client = self._get_client()
        try:
            return await client.chat.completions.create(
                model=model or self._default_model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                **extra,
            )
        except openai.RateLimitError as e:
            raise RateLimitError(f"DeepSeek rate limit exceeded: {e}") from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise AuthenticationError(f"DeepSeek authentication failed: {e}") from e
        except openai.APIError as e:
            raise ProviderError(f"DeepSeek API error: {e}") from e

    @staticmethod
    def _usage(completion) -> dict:
        if not completion.usage:
            return {}
        return {
            "input_tokens": completion.usage.prompt_tokens,
            "output_tokens": completion.usage.completion_tokens,
        }

    @staticmethod
    def _message(completion):
        if not completion.choices:
            raise ProviderError("DeepSeek returned no choices")
        return completion.choices[0].message

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ModelResponse:
        completion = await self._complete(prompt, system, model, max_tokens, temperature)

        return ModelResponse(
            content=self._message(completion).content or "",
            model=completion.model,
            provider=self.name,
            usage=self._usage(completion),
            raw_response=completion,
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
        completion = await self._complete(
            prompt, system, model, max_tokens, temperature,
            tools=[openai_quiz_tool()],
            tool_choice={"type": "function", "function": {"name": QUIZ_TOOL_NAME}},
        )
        message = self._message(completion)

        calls = [tc for tc in message.tool_calls or [] if tc.function.name == QUIZ_TOOL_NAME]
        if not calls:
            raise StructuredOutputError(f"DeepSeek did not call {QUIZ_TOOL_NAME}")
        try:
            items = quiz_items(json.loads(calls[0].function.arguments))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            raise StructuredOutputError(f"DeepSeek quiz arguments unusable: {e}") from e

        return QuizResponse(
            content=message.content or "",
            model=completion.model,
            provider=self.name,
            usage=self._usage(completion),
            raw_response=completion,
            items=items,
        )

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None
