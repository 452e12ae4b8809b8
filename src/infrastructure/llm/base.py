"""Abstract base class for LLM services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class MessageRole(str, Enum):
    """Role of a message in the conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A message in the conversation."""

    role: MessageRole
    content: str


@dataclass
class LLMUsage:
    """Token usage statistics."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def as_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """Response from LLM generation."""

    content: str
    finish_reason: str
    usage: LLMUsage
    model: str


class LLMServiceBase(ABC):
    """Text-generation provider behind summarization and question generation.

    Implementations translate SDK failures into the pipeline taxonomy:
    connection errors, timeouts, throttling and 5xx become RemoteTransient;
    any other API error status becomes RemoteRejected.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short provider identifier used in logs and errors."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when generate() gets no override."""

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            messages: List of conversation messages.
            model: Optional model override.
            temperature: Sampling temperature (0.0-2.0).
            max_tokens: Maximum tokens to generate.
            json_mode: Ask the provider for JSON output where supported.

        Returns:
            LLM response with content and usage.
        """

    async def close(self) -> None:  # noqa: B027
        """Release network resources. No-op by default."""
