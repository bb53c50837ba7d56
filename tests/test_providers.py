"""
Tests for AI model providers.
"""

import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from exam_ninja.providers import get_provider
from exam_ninja.providers.base import (
    AuthenticationError,
    ModelProvider,
    ModelResponse,
    ProviderError,
    RateLimitError,
    StructuredOutputError,
)
from exam_ninja.providers.claude import ClaudeProvider
from exam_ninja.providers.deepseek import DeepSeekProvider
from exam_ninja.providers.gemini import GeminiProvider
from exam_ninja.providers.mock import MockProvider, create_quiz_mock, generate_mock_questions
from exam_ninja.providers.quiz_format import (
    QUIZ_SCHEMA,
    anthropic_quiz_tool,
    openai_quiz_tool,
    quiz_items,
    to_gemini_schema,
)


class TestMockProvider:
    """Tests for MockProvider."""

    @pytest.mark.asyncio
    async def test_basic_generate(self):
        """Test basic response generation."""
        provider = MockProvider(fixed_response="Hello, world!")
        response = await provider.generate("Test prompt")

        assert response.content == "Hello, world!"
        assert response.provider == "mock"
        assert response.model == "mock-model-v1"

    @pytest.mark.asyncio
    async def test_custom_response_generator(self):
        """Test custom response generator."""
        def my_generator(prompt: str) -> str:
            return f"Response to: {prompt}"

        provider = MockProvider(response_generator=my_generator)
        response = await provider.generate("Hello")

        assert response.content == "Response to: Hello"

    @pytest.mark.asyncio
    async def test_quiz_detection(self):
        """Test the default response is sized from the prompt."""
        provider = MockProvider()
        response = await provider.generate(
            "Generate 7 Hard level questions for Optics focusing on GATE pattern."
        )

        data = json.loads(response.content)
        assert len(data["quiz"]) == 7
        assert "[Optics]" in data["quiz"][0]["text"]

    @pytest.mark.asyncio
    async def test_simulated_failure(self):
        """Test simulated failures."""
        provider = MockProvider(fail_rate=1.0)

        with pytest.raises(ProviderError):
            await provider.generate("Test")

    @pytest.mark.asyncio
    async def test_generate_quiz(self):
        """Test the structured path decodes the default reply."""
        provider = MockProvider()
        response = await provider.generate_quiz(
            "Generate 4 Easy level questions for Sets focusing on SSC pattern."
        )

        assert len(response.items) == 4
        assert response.provider == "mock"

    @pytest.mark.asyncio
    async def test_generate_quiz_refusals(self):
        """Test non-quiz replies and disabled structured output raise."""
        with pytest.raises(StructuredOutputError):
            await MockProvider(fixed_response="plain text").generate_quiz("Test")
        with pytest.raises(StructuredOutputError):
            await MockProvider(structured=False).generate_quiz("Test")

    @pytest.mark.asyncio
    async def test_token_usage(self):
        """Test token usage tracking."""
        provider = MockProvider(fixed_response="Test", token_count=50)
        response = await provider.generate("one two three")

        assert response.input_tokens == 6
        assert response.output_tokens == 50
        assert response.total_tokens == 56

    @pytest.mark.asyncio
    async def test_create_quiz_mock(self):
        """Test the fixed quiz mock wraps questions."""
        provider = create_quiz_mock([{"id": "1"}])
        response = await provider.generate("anything")

        assert json.loads(response.content) == {"quiz": [{"id": "1"}]}


class TestMockQuestions:
    """Tests for generate_mock_questions."""

    def test_cycles_types(self):
        """Test every question type appears."""
        questions = generate_mock_questions("Math", 6)

        assert [q["type"] for q in questions] == ["MCQ", "MSQ", "NAT"] * 2

    def test_answers_are_options(self):
        """Test choice answers are taken from the options."""
        for q in generate_mock_questions("Math", 9):
            if q["type"] == "NAT":
                assert q["options"] == []
                assert len(q["correctAnswer"]) == 1
            else:
                assert set(q["correctAnswer"]) <= set(q["options"])


class TestModelResponse:
    """Tests for ModelResponse."""

    def test_token_properties(self):
        """Test token count properties."""
        response = ModelResponse(
            content="Test",
            model="test-model",
            provider="test",
            usage={"input_tokens": 100, "output_tokens": 50},
        )

        assert response.input_tokens == 100
        assert response.output_tokens == 50
        assert response.total_tokens == 150

    def test_missing_usage(self):
        """Test handling of missing usage data."""
        response = ModelResponse(content="Test", model="test-model", provider="test")

        assert response.input_tokens == 0
        assert response.output_tokens == 0


class TestQuizFormat:
    """Tests for the shared quiz schema and its per-backend forms."""

    def test_anthropic_tool(self):
        """Test Anthropic tool shape."""
        tool = anthropic_quiz_tool()

        assert tool["name"] == "submit_quiz"
        assert tool["input_schema"] is QUIZ_SCHEMA

    def test_openai_tool(self):
        """Test OpenAI/DeepSeek function shape."""
        tool = openai_quiz_tool()

        assert tool["type"] == "function"
        assert tool["function"]["name"] == "submit_quiz"

    def test_gemini_schema(self):
        """Test Gemini schema conversion upper-cases types."""
        schema = to_gemini_schema(QUIZ_SCHEMA)
        question = schema["properties"]["quiz"]["items"]

        assert schema["type"] == "OBJECT"
        assert schema["properties"]["quiz"]["type"] == "ARRAY"
        assert question["properties"]["type"]["enum"] == ["MCQ", "MSQ", "NAT"]
        assert question["properties"]["options"]["items"]["type"] == "STRING"
        assert "correctAnswer" in question["required"]

    def test_quiz_items(self):
        """Test payload unwrapping."""
        assert quiz_items({"quiz": [{"id": "1"}]}) == [{"id": "1"}]
        assert quiz_items([{"id": "1"}]) == [{"id": "1"}]
        with pytest.raises(ValueError):
            quiz_items({"questions": []})
        with pytest.raises(ValueError):
            quiz_items("quiz")


def stub_anthropic_client(content, calls):
    async def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(
            model="claude-test",
            content=content,
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=5, output_tokens=7),
        )
    return SimpleNamespace(messages=SimpleNamespace(create=create))


class TestClaudeProvider:
    """Tests for ClaudeProvider with a stubbed SDK client."""

    @pytest.mark.asyncio
    async def test_generate_quiz_forces_tool(self):
        """Test the quiz tool is forced and its input returned."""
        calls = []
        provider = ClaudeProvider(api_key="k")
        provider._client = stub_anthropic_client(
            [SimpleNamespace(type="tool_use", name="submit_quiz", input={"quiz": [{"id": "1"}]})],
            calls,
        )
        response = await provider.generate_quiz("Prompt", system="System", temperature=1.5)

        assert response.items == [{"id": "1"}]
        assert response.input_tokens == 5
        assert calls[0]["tool_choice"] == {"type": "tool", "name": "submit_quiz"}
        assert calls[0]["temperature"] == 1.0
        assert calls[0]["system"] == "System"

    @pytest.mark.asyncio
    async def test_generate_quiz_without_tool_call(self):
        """Test a text-only reply raises StructuredOutputError."""
        provider = ClaudeProvider(api_key="k")
        provider._client = stub_anthropic_client([SimpleNamespace(type="text", text="Sorry")], [])

        with pytest.raises(StructuredOutputError):
            await provider.generate_quiz("Prompt")

    @pytest.mark.asyncio
    async def test_generate_text(self):
        """Test text blocks are joined."""
        provider = ClaudeProvider(api_key="k")
        provider._client = stub_anthropic_client(
            [SimpleNamespace(type="text", text="Hello "), SimpleNamespace(type="text", text="there")],
            [],
        )
        response = await provider.generate("Prompt")

        assert response.content == "Hello there"
        assert response.model == "claude-test"

    @pytest.mark.asyncio
    async def test_rate_limit_translated(self):
        """Test SDK rate-limit errors become RateLimitError."""
        async def create(**kwargs):
            request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
            raise anthropic.RateLimitError(
                "slow down", response=httpx.Response(429, request=request), body=None
            )

        provider = ClaudeProvider(api_key="k")
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        with pytest.raises(RateLimitError):
            await provider.generate("Prompt")


def stub_openai_client(message):
    async def create(**kwargs):
        return SimpleNamespace(
            model="deepseek-test",
            choices=[SimpleNamespace(message=message)],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=4),
        )
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def function_call(arguments: str):
    return SimpleNamespace(function=SimpleNamespace(name="submit_quiz", arguments=arguments))


class TestDeepSeekProvider:
    """Tests for DeepSeekProvider with a stubbed SDK client."""

    @pytest.mark.asyncio
    async def test_generate_quiz(self):
        """Test function-call arguments are decoded."""
        provider = DeepSeekProvider(api_key="k")
        provider._client = stub_openai_client(SimpleNamespace(
            content=None, tool_calls=[function_call(json.dumps({"quiz": [{"id": "1"}]}))]
        ))
        response = await provider.generate_quiz("Prompt")

        assert response.items == [{"id": "1"}]
        assert response.output_tokens == 4

    @pytest.mark.asyncio
    async def test_generate_quiz_bad_arguments(self):
        """Test truncated JSON arguments raise StructuredOutputError."""
        provider = DeepSeekProvider(api_key="k")
        provider._client = stub_openai_client(SimpleNamespace(
            content=None, tool_calls=[function_call('{"quiz": [')]
        ))

        with pytest.raises(StructuredOutputError):
            await provider.generate_quiz("Prompt")

    @pytest.mark.asyncio
    async def test_generate_text(self):
        """Test plain completions."""
        provider = DeepSeekProvider(api_key="k")
        provider._client = stub_openai_client(SimpleNamespace(content="Hi", tool_calls=None))
        response = await provider.generate("Prompt")

        assert response.content == "Hi"
        assert response.provider == "deepseek"



def gemini_with(handler) -> GeminiProvider:
    provider = GeminiProvider(api_key="test-key")
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return provider


class TestGeminiProvider:
    """Tests for GeminiProvider against a mocked HTTP transport."""

    @pytest.mark.asyncio
    async def test_generate(self):
        """Test request payload and response parsing."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": '{"quiz": '}, {"text": "[]}"}]}}],
                "usageMetadata": {"promptTokenCount": 11, "candidatesTokenCount": 22},
            })

        provider = gemini_with(handler)
        response = await provider.generate_quiz("Prompt", system="System")
        await provider.close()

        assert response.content == '{"quiz": []}'
        assert response.items == []
        assert response.input_tokens == 11
        assert response.output_tokens == 22
        assert seen["url"].endswith("/gemini-2.5-flash:generateContent")
        config = seen["body"]["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"]["type"] == "OBJECT"
        assert seen["body"]["systemInstruction"]["parts"][0]["text"] == "System"

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        """Test 429 maps to RateLimitError."""
        provider = gemini_with(lambda request: httpx.Response(429, json={}))

        with pytest.raises(RateLimitError):
            await provider.generate("Prompt")

    @pytest.mark.asyncio
    async def test_auth_failure(self):
        """Test 403 maps to AuthenticationError."""
        provider = gemini_with(lambda request: httpx.Response(403, json={}))

        with pytest.raises(AuthenticationError):
            await provider.generate("Prompt")

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        """Test a JSON array body raises ProviderError instead of crashing."""
        provider = gemini_with(lambda request: httpx.Response(200, json=[]))

        with pytest.raises(ProviderError):
            await provider.generate("Prompt")

    @pytest.mark.asyncio
    async def test_malformed_candidate(self):
        """Test a candidate that is not an object raises ProviderError."""
        provider = gemini_with(lambda request: httpx.Response(200, json={"candidates": ["oops"]}))

        with pytest.raises(ProviderError):
            await provider.generate_quiz("Prompt")

    @pytest.mark.asyncio
    async def test_quiz_not_json(self):
        """Test unparseable schema output raises StructuredOutputError."""
        provider = gemini_with(lambda request: httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "not json"}]}}],
        }))

        with pytest.raises(StructuredOutputError):
            await provider.generate_quiz("Prompt")

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        """Test a blocked prompt raises ProviderError."""
        provider = gemini_with(
            lambda request: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})
        )

        with pytest.raises(ProviderError):
            await provider.generate("Prompt")


class TestProviderFactory:
    """Tests for get_provider and key handling."""

    def test_known_providers(self):
        """Test each provider name resolves."""
        assert isinstance(get_provider("mock"), MockProvider)
        assert isinstance(get_provider("gemini", api_key="k"), GeminiProvider)
        assert isinstance(get_provider("claude", api_key="k"), ClaudeProvider)
        assert isinstance(get_provider("deepseek", api_key="k"), DeepSeekProvider)

    def test_unknown_provider(self):
        """Test unknown names are rejected."""
        with pytest.raises(ValueError):
            get_provider("kimi")

    @pytest.mark.asyncio
    async def test_missing_keys(self, monkeypatch):
        """Test a missing API key raises AuthenticationError on first use."""
        for var in ("ANTHROPIC_API_KEY", "DEEPSEEK_API_KEY", "GEMINI_API_KEY", "API_KEY"):
            monkeypatch.delenv(var, raising=False)

        for provider in (ClaudeProvider(), DeepSeekProvider(), GeminiProvider()):
            assert isinstance(provider, ModelProvider)
            with pytest.raises(AuthenticationError):
                await provider.generate("Prompt")
