"""Anthropic implementation of LLM service."""

from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from src.commons.telemetry import create_llm_generation, end_llm_generation
from src.domain.exceptions import RemoteRejected, RemoteTransient
from src.infrastructure.llm.base import (
    LLMResponse,
    LLMServiceBase,
    LLMUsage,
    Message,
    MessageRole,
)

PROVIDER = "anthropic"


def classify_anthropic_error(error: Exception) -> Exception:
    """Map an Anthropic SDK error onto the pipeline error taxonomy.

    Overloaded (529) counts as a server error. Errors the SDK does not
    raise are returned unchanged.
    """
    if isinstance(error, anthropic.APIConnectionError):
        return RemoteTransient(f"Anthropic unreachable: {error}", provider=PROVIDER)
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code == 429 or error.status_code >= 500:
            return RemoteTransient(
                f"Anthropic returned HTTP {error.status_code}", provider=PROVIDER
            )
        return RemoteRejected(
            f"Anthropic rejected the request (HTTP {error.status_code}): {error.message}",
            provider=PROVIDER,
        )
    return error


class AnthropicLLMService(LLMServiceBase):
    """Anthropic Messages API client."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-5-haiku-latest",
        base_url: str | None = None,
        timeout: float = 60.0,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize Anthropic LLM client.

        Args:
            api_key: Anthropic API key.
            model: Default model to use.
            base_url: Optional custom API endpoint.
            timeout: Request timeout in seconds.
            client: Optional preconfigured SDK client.
        """
        self._client = client or AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self._model = model

    @property
    def provider_name(self) -> str:
        return PROVIDER

    @property
    def default_model(self) -> str:
        return self._model

    @staticmethod
    def _split_system(messages: list[Message]) -> tuple[list[dict[str, str]], str | None]:
        """Anthropic takes the system prompt outside the message list."""
        system_parts = [m.content for m in messages if m.role == MessageRole.SYSTEM]
        chat = [
            {"role": m.role.value, "content": m.content}
            for m in messages
            if m.role != MessageRole.SYSTEM
        ]
        return chat, "\n\n".join(system_parts) or None

    async def generate(
        self,
        messages: list[Message],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,  # noqa: ARG002 - Claude handles JSON via prompting
    ) -> LLMResponse:
        use_model = model or self._model
        chat_messages, system_prompt = self._split_system(messages)

        kwargs: dict[str, Any] = {
            "model": use_model,
            "messages": chat_messages,
            "temperature": min(temperature, 1.0),
            "max_tokens": max_tokens,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        generation = create_llm_generation(
            name="anthropic_messages",
            model=use_model,
            input_messages=[{"role": m.role.value, "content": m.content} for m in messages],
            model_parameters={"temperature": temperature, "max_tokens": max_tokens},
            metadata={"provider": PROVIDER},
        )

        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as e:
            end_llm_generation(
                generation=generation,
                output=None,
                level="ERROR",
                status_message=str(e),
            )
            classified = classify_anthropic_error(e)
            if classified is e:
                raise
            raise classified from e

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )
        result = LLMResponse(
            content=content,
            finish_reason=response.stop_reason or "end_turn",
            usage=LLMUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
            model=response.model,
        )
        end_llm_generation(
            generation=generation,
            output=result.content,
            usage=result.usage.as_dict(),
        )
        return result

    async def close(self) -> None:
        await self._client.close()
