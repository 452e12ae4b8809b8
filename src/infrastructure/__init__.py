"""Infrastructure layer - external service implementations."""

from src.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)
from src.infrastructure.llm import (
    AnthropicLLMService,
    LLMResponse,
    LLMServiceBase,
    LLMUsage,
    Message,
    MessageRole,
    OpenAILLMService,
)
from src.infrastructure.media import FFprobeMediaProbe, MediaInfo, MediaProbeBase
from src.infrastructure.queue import DocumentJobQueue, JobQueueBase
from src.infrastructure.transcription import (
    AssemblyAITranscription,
    TranscriptionServiceBase,
)
from src.infrastructure.youtube import (
    ResolvedAudio,
    YouTubeResolverBase,
    YtDlpResolver,
)

__all__ = [
    # Factory
    "InfrastructureFactory",
    "get_factory",
    "reset_factory",
    # Transcription
    "TranscriptionServiceBase",
    "AssemblyAITranscription",
    # LLM
    "LLMServiceBase",
    "LLMResponse",
    "LLMUsage",
    "Message",
    "MessageRole",
    "OpenAILLMService",
    "AnthropicLLMService",
    # Media
    "MediaProbeBase",
    "MediaInfo",
    "FFprobeMediaProbe",
    # Queue
    "JobQueueBase",
    "DocumentJobQueue",
    # YouTube
    "YouTubeResolverBase",
    "ResolvedAudio",
    "YtDlpResolver",
]
