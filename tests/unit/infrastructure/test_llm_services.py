"""Unit tests for the OpenAI and Anthropic LLM services."""

from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from src.domain.exceptions import RemoteRejected, RemoteTransient
from src.infrastructure.llm import (
    AnthropicLLMService,
    Message,
    MessageRole,
    OpenAILLMService,
    classify_anthropic_error,
    classify_openai_error,
)

REQUEST = httpx.Request("POST", "https://api.example.com/v1/chat")

MESSAGES = [
    Message(role=MessageRole.SYSTEM, content="You summarize."),
    Message(role=MessageRole.USER, content="hello world"),
]


def status_error(module, status_code):
    response = httpx.Response(status_code, request=REQUEST)
    return module.APIStatusError("failure", response=response, body=None)


def openai_completion(content="Summary", choices=True):
    completion = MagicMock()
    completion.model = "gpt-4o-mini"
    completion.usage = MagicMock(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    completion.choices = (
        [MagicMock(message=MagicMock(content=content), finish_reason="stop")] if choices else []
    )
    return completion


class TestOpenAIErrorClassification:
    """Tests for OpenAI error mapping."""

    def test_connection_error_is_transient(self):
        error = openai.APIConnectionError(request=REQUEST)
        assert isinstance(classify_openai_error(error), RemoteTransient)

    @pytest.mark.parametrize("status_code", [429, 500, 502])
    def test_throttling_and_server_errors_are_transient(self, status_code):
        classified = classify_openai_error(status_error(openai, status_code))
        assert isinstance(classified, RemoteTransient)
        assert classified.provider == "openai"

    @pytest.mark.parametrize("status_code", [400, 401, 404])
    def test_client_errors_are_rejected(self, status_code):
        assert isinstance(classify_openai_error(status_error(openai, status_code)), RemoteRejected)

    def test_unknown_errors_pass_through(self):
        error = KeyError("x")
        assert classify_openai_error(error) is error


class TestAnthropicErrorClassification:
    """Tests for Anthropic error mapping."""

    def test_overloaded_is_transient(self):
        assert isinstance(classify_anthropic_error(status_error(anthropic, 529)), RemoteTransient)

    def test_bad_request_is_rejected(self):
        assert isinstance(classify_anthropic_error(status_error(anthropic, 400)), RemoteRejected)

    def test_connection_error_is_transient(self):
        error = anthropic.APIConnectionError(request=REQUEST)
        assert isinstance(classify_anthropic_error(error), RemoteTransient)


class TestOpenAILLMService:
    """Tests for OpenAILLMService.generate."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=openai_completion())
        return client

    async def test_generate(self, client):
        service = OpenAILLMService(api_key="k", client=client)

        response = await service.generate(MESSAGES, temperature=0.3, max_tokens=100)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "You summarize."}
        assert kwargs["temperature"] == 0.3
        assert "response_format" not in kwargs
        assert response.content == "Summary"
        assert response.usage.total_tokens == 15

    async def test_json_mode(self, client):
        service = OpenAILLMService(api_key="k", model="gpt-4o", client=client)

        await service.generate(MESSAGES, json_mode=True)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == "gpt-4o"

    async def test_sdk_error_is_classified(self, client):
        client.chat.completions.create.side_effect = status_error(openai, 503)
        service = OpenAILLMService(api_key="k", client=client)

        with pytest.raises(RemoteTransient):
            await service.generate(MESSAGES)

    async def test_no_choices_is_rejected(self, client):
        client.chat.completions.create.return_value = openai_completion(choices=False)
        service = OpenAILLMService(api_key="k", client=client)

        with pytest.raises(RemoteRejected):
            await service.generate(MESSAGES)


class TestAnthropicLLMService:
    """Tests for AnthropicLLMService.generate."""

    @pytest.fixture
    def client(self):
        message = MagicMock()
        message.model = "claude-3-5-haiku-latest"
        message.stop_reason = "end_turn"
        message.usage = MagicMock(input_tokens=12, output_tokens=4)
        message.content = [
            MagicMock(type="text", text="Part one. "),
            MagicMock(type="text", text="Part two."),
        ]
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=message)
        return client

    async def test_system_prompt_is_split_out(self, client):
        service = AnthropicLLMService(api_key="k", client=client)

        response = await service.generate(MESSAGES, temperature=1.5)

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == "You summarize."
        assert kwargs["messages"] == [{"role": "user", "content": "hello world"}]
        assert kwargs["temperature"] == 1.0
        assert response.content == "Part one. Part two."
        assert response.usage.total_tokens == 16

    async def test_sdk_error_is_classified(self, client):
        client.messages.create.side_effect = status_error(anthropic, 401)
        service = AnthropicLLMService(api_key="k", client=client)

        with pytest.raises(RemoteRejected):
            await service.generate(MESSAGES)
