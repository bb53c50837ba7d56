"""
Google Gemini provider implementation

Talks to the Gemini REST API (generateContent) over httpx. Question sets are
requested with responseMimeType=application/json plus a responseSchema,
which Gemini enforces server-side.
"""

import json
import os
from typing import Any, Optional

import httpx

from .base import (
    ModelProvider, ModelResponse, QuizResponse, ProviderError, RateLimitError,
    AuthenticationError, StructuredOutputError
)
from .quiz_format import QUIZ_SCHEMA, quiz_items, to_gemini_schema


class GeminiProvider(ModelProvider):
    """
    Google Gemini provider.

    API key is read from:
    1. Constructor argument
    2. GEMINI_API_KEY environment variable
    3. API_KEY environment variable
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "gemini-2.5-flash",
        timeout: float = 120.0,
    ):
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        self._default_model = default_model
        self._timeout = timeout
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "No Gemini API key provided. Set GEMINI_API_KEY or pass api_key to constructor."
                )
            self._client = httpx.AsyncClient(
                headers={
                    "x-goog-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        return self._client

    def _get_url(self, model: str) -> str:
        return f"{self.BASE_URL}/{model}:generateContent"

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return self._default_model

    async def _generate_content(
        self,
        prompt: str,
        system: Optional[str],
        model: Optional[str],
        max_tokens: int,
        temperature: float,
        response_schema: Optional[dict] = None,
    ) -> ModelResponse:
        client = self._get_client()
        model = model or self._default_model

        generation_config: dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
        }
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = to_gemini_schema(response_schema)

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        try:
            response = await client.post(self._get_url(model), json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitError(f"Gemini rate limit exceeded: {e}") from e
            if e.response.status_code in (401, 403):
                raise AuthenticationError(f"Gemini authentication failed: {e}") from e
            raise ProviderError(f"Gemini API error: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(f"Gemini API error: {e}") from e

        return self._parse_body(data, model)

    def _parse_body(self, data: Any, model: str) -> ModelResponse:
        """Read text and usage from a generateContent body, rejecting odd shapes."""
        if not isinstance(data, dict):
            raise ProviderError(f"Gemini returned a {type(data).__name__} body, expected an object")

        candidates = data.get("candidates") or []
        if not candidates:
            raise ProviderError(f"Gemini returned no candidates: {data.get('promptFeedback', {})}")

        candidate = candidates[0] if isinstance(candidates, list) else None
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            raise ProviderError("Gemini candidate has no content parts")

        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))

        usage = {}
        metadata = data.get("usageMetadata")
        if isinstance(metadata, dict):
            usage = {
                "input_tokens": metadata.get("promptTokenCount", 0),
                "output_tokens": metadata.get("candidatesTokenCount", 0),
            }

        return ModelResponse(
            content=text,
            model=data.get("modelVersion", model),
            provider=self.name,
            usage=usage,
            raw_response=data,
        )

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ModelResponse:
        return await self._generate_content(prompt, system, model, max_tokens, temperature)

    async def generate_quiz(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> QuizResponse:
        response = await self._generate_content(
            prompt, system, model, max_tokens, temperature, response_schema=QUIZ_SCHEMA
        )
        try:
            items = quiz_items(json.loads(response.content))
        except ValueError as e:
            raise StructuredOutputError(f"Gemini JSON output unusable: {e}") from e

        return QuizResponse(
            content=response.content,
            model=response.model,
            provider=response.provider,
            usage=response.usage,
            raw_response=response.raw_response,
            items=items,
        )

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
