"""Pydantic settings models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = "video-pipeline"
    version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class ServerSettings(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    reload: bool = False
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    api_prefix: str = "/v1"
    docs_enabled: bool = True


class DocumentCollectionSettings(BaseModel):
    """Document DB collection names."""

    videos: str = "videos"
    jobs: str = "pipeline_jobs"
    users: str = "user_usage"


class DocumentDBSettings(BaseModel):
    """Document database settings (MongoDB)."""

    provider: Literal["mongodb", "memory"] = "mongodb"
    host: str = "localhost"
    port: int = 27017
    username: str = ""
    password: str = ""
    database: str = "video_pipeline"
    auth_source: str = "admin"
    collections: DocumentCollectionSettings = Field(
        default_factory=DocumentCollectionSettings
    )


class TranscriptionSettings(BaseModel):
    """Speech-to-text provider settings."""

    provider: Literal["assemblyai"] = "assemblyai"
    api_key: str = ""
    base_url: str = "https://api.assemblyai.com/v2"
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    max_poll_attempts: int = Field(default=60, ge=1)
    request_timeout_seconds: float = Field(default=120.0, gt=0)
    features: dict[str, bool] = Field(
        default_factory=lambda: {
            "speaker_labels": True,
            "auto_chapters": True,
            "entity_detection": True,
            "sentiment_analysis": True,
            "auto_highlights": True,
            "punctuate": True,
            "format_text": True,
            "language_detection": True,
        }
    )


class LLMSettings(BaseModel):
    """Text-generation provider settings."""

    enabled: bool = True
    provider: Literal["openai", "anthropic"] = "openai"
    api_key: str = ""
    endpoint: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = 2048
    timeout_seconds: int = 60


class FallbackLLMSettings(LLMSettings):
    """Secondary provider tried when the primary one rejects or gives up."""

    enabled: bool = False
    provider: Literal["openai", "anthropic"] = "anthropic"
    model: str = "claude-3-5-haiku-latest"


class RetrySettings(BaseModel):
    """Bounded exponential backoff."""

    max_attempts: int = Field(default=3, ge=1, le=20)
    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float | None = None


class PipelineSettings(BaseModel):
    """Stage execution settings."""

    retry: RetrySettings = Field(default_factory=RetrySettings)
    queue_retry: RetrySettings = Field(
        default_factory=lambda: RetrySettings(max_attempts=3, base_delay_seconds=5.0)
    )
    lease_seconds: int = Field(
        default=1800,
        ge=10,
        description="How long a claimed job stays invisible to other workers",
    )
    analysis_enabled: bool = True
    summary_type: Literal[
        "brief", "detailed", "comprehensive", "bullet_points", "key_insights"
    ] = "detailed"
    question_count: int = Field(default=5, ge=1, le=50)
    question_difficulty: Literal["easy", "medium", "hard"] = "medium"
    question_types: list[str] = Field(
        default_factory=lambda: ["multiple_choice", "short_answer"]
    )


class YouTubeSettings(BaseModel):
    """YouTube resolution settings."""

    cookies_file: str | None = None
    proxy: str | None = None


class MediaSettings(BaseModel):
    """Media probing settings."""

    ffprobe_path: str = "ffprobe"


class QueueSettings(BaseModel):
    """Job queue backend."""

    provider: Literal["mongodb", "memory"] = "mongodb"


class WorkerSettings(BaseModel):
    """Pipeline worker pool settings."""

    concurrency: int = Field(default=2, ge=1, le=64)
    idle_poll_seconds: float = Field(default=1.0, gt=0)
    embedded: bool = Field(
        default=False,
        description="Run the worker pool inside the API process",
    )


class UploadSettings(BaseModel):
    """Upload handling settings."""

    directory: str = "data/uploads"
    allowed_extensions: list[str] = Field(
        default_factory=lambda: [".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"]
    )
    max_size_mb: int = 500


class UsageSettings(BaseModel):
    """Per-user monthly processing allowance."""

    enforce: bool = True
    monthly_limit: int = Field(default=10, ge=0)


class TelemetrySettings(BaseModel):
    """Logging settings."""

    log_format: Literal["json", "text"] = "json"
    log_level: str = "INFO"


class LangfuseSettings(BaseModel):
    """Langfuse LLM tracing settings."""

    enabled: bool = False
    public_key: str = ""
    secret_key: str = ""
    host: str = "https://cloud.langfuse.com"
    debug: bool = False
    sample_rate: float = Field(default=1.0, ge=0, le=1)
    flush_at: int = 15
    flush_interval: float = 0.5


class Settings(BaseSettings):
    """Root settings container with environment loading."""

    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    document_db: DocumentDBSettings = Field(default_factory=DocumentDBSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    fallback_llm: FallbackLLMSettings = Field(default_factory=FallbackLLMSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)
    youtube: YouTubeSettings = Field(default_factory=YouTubeSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    usage: UsageSettings = Field(default_factory=UsageSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    langfuse: LangfuseSettings = Field(default_factory=LangfuseSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VIDEO_PIPELINE__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
