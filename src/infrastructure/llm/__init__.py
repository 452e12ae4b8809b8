"""LLM services."""

from src.infrastructure.llm.anthropic_llm import (
    AnthropicLLMService,
    classify_anthropic_error,
)
from src.infrastructure.llm.base import (
    LLMResponse,
    LLMServiceBase,
    LLMUsage,
    Message,
    MessageRole,
)
from src.infrastructure.llm.openai_llm import OpenAILLMService, classify_openai_error

__all__ = [
    # Base classes
    "LLMServiceBase",
    "LLMResponse",
    "LLMUsage",
    "Message",
    "MessageRole",
    # Implementations
    "OpenAILLMService",
    "AnthropicLLMService",
    "classify_openai_error",
    "classify_anthropic_error",
]
