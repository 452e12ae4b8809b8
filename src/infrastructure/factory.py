"""Infrastructure factory for creating service instances from configuration."""

import inspect
from pathlib import Path
from typing import Any, cast

from src.commons.infrastructure.documentdb import (
    DocumentDBBase,
    InMemoryDocumentDB,
    MongoDBDocumentDB,
)
from src.commons.settings.models import LLMSettings, Settings
from src.commons.telemetry import get_logger
from src.infrastructure.llm import AnthropicLLMService, LLMServiceBase, OpenAILLMService
from src.infrastructure.media import FFprobeMediaProbe, MediaProbeBase
from src.infrastructure.queue import DocumentJobQueue, JobQueueBase
from src.infrastructure.transcription import (
    AssemblyAITranscription,
    TranscriptionServiceBase,
)
from src.infrastructure.youtube import YouTubeResolverBase, YtDlpResolver

logger = get_logger(__name__)


def _build_llm(llm_settings: LLMSettings) -> LLMServiceBase:
    if llm_settings.provider == "anthropic":
        return AnthropicLLMService(
            api_key=llm_settings.api_key,
            model=llm_settings.model,
            base_url=llm_settings.endpoint,
            timeout=llm_settings.timeout_seconds,
        )
    if llm_settings.provider == "openai":
        return OpenAILLMService(
            api_key=llm_settings.api_key,
            model=llm_settings.model,
            base_url=llm_settings.endpoint,
            timeout=llm_settings.timeout_seconds,
        )
    raise ValueError(f"Unsupported LLM provider: {llm_settings.provider}")


class InfrastructureFactory:
    """Factory for creating infrastructure service instances.

    Creates concrete implementations based on configuration settings and
    caches one instance of each.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize factory with settings.

        Args:
            settings: Application settings.
        """
        self._settings = settings
        self._instances: dict[str, Any] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_document_db(self) -> DocumentDBBase:
        """Get document database instance.

        Returns:
            Configured document database provider.
        """
        if "document_db" not in self._instances:
            doc_settings = self._settings.document_db
            if doc_settings.provider == "memory":
                self._instances["document_db"] = InMemoryDocumentDB()
            else:
                if doc_settings.username and doc_settings.password:
                    connection_string = (
                        f"mongodb://{doc_settings.username}:{doc_settings.password}"
                        f"@{doc_settings.host}:{doc_settings.port}"
                        f"/?authSource={doc_settings.auth_source}"
                    )
                else:
                    connection_string = f"mongodb://{doc_settings.host}:{doc_settings.port}"
                self._instances["document_db"] = MongoDBDocumentDB(
                    connection_string=connection_string,
                    database_name=doc_settings.database,
                )
        return cast("DocumentDBBase", self._instances["document_db"])

    def get_job_queue(self) -> JobQueueBase:
        """Get the pipeline job queue.

        Both providers store jobs as documents. The memory provider keeps
        them in a process-local database so the API and an embedded worker
        pool share one queue without MongoDB.
        """
        if "job_queue" not in self._instances:
            if self._settings.queue.provider == "memory":
                document_db: DocumentDBBase = self._instances.setdefault(
                    "queue_document_db",
                    self.get_document_db()
                    if self._settings.document_db.provider == "memory"
                    else InMemoryDocumentDB(),
                )
            else:
                document_db = self.get_document_db()
            self._instances["job_queue"] = DocumentJobQueue(
                document_db=document_db,
                collection=self._settings.document_db.collections.jobs,
                lease_seconds=self._settings.pipeline.lease_seconds,
            )
        return cast("JobQueueBase", self._instances["job_queue"])

    def get_media_probe(self) -> MediaProbeBase:
        if "media_probe" not in self._instances:
            self._instances["media_probe"] = FFprobeMediaProbe(
                ffprobe_path=self._settings.media.ffprobe_path
            )
        return cast("MediaProbeBase", self._instances["media_probe"])

    def get_youtube_resolver(self) -> YouTubeResolverBase:
        """Get YouTube resolver instance.

        Returns:
            Configured YouTube resolver.
        """
        if "youtube_resolver" not in self._instances:
            yt_settings = self._settings.youtube
            cookies_file = (
                Path(yt_settings.cookies_file) if yt_settings.cookies_file else None
            )
            self._instances["youtube_resolver"] = YtDlpResolver(
                cookies_file=cookies_file,
                proxy=yt_settings.proxy,
            )
        return cast("YouTubeResolverBase", self._instances["youtube_resolver"])

    def get_transcription_service(self) -> TranscriptionServiceBase:
        """Get transcription service instance.

        Returns:
            Configured transcription service.
        """
        if "transcription" not in self._instances:
            trans_settings = self._settings.transcription
            self._instances["transcription"] = AssemblyAITranscription(
                api_key=trans_settings.api_key,
                media_probe=self.get_media_probe(),
                base_url=trans_settings.base_url,
                poll_interval_seconds=trans_settings.poll_interval_seconds,
                max_poll_attempts=trans_settings.max_poll_attempts,
                features=dict(trans_settings.features),
                timeout=trans_settings.request_timeout_seconds,
            )
        return cast("TranscriptionServiceBase", self._instances["transcription"])

    def get_llm_service(self) -> LLMServiceBase:
        """Get the primary LLM service instance.

        Raises:
            ValueError: If provider is not supported.
        """
        if "llm" not in self._instances:
            self._instances["llm"] = _build_llm(self._settings.llm)
        return cast("LLMServiceBase", self._instances["llm"])

    def get_fallback_llm_service(self) -> LLMServiceBase | None:
        """Get the fallback LLM service, or None when it is disabled."""
        fallback_settings = self._settings.fallback_llm
        if not fallback_settings.enabled:
            return None
        if "fallback_llm" not in self._instances:
            self._instances["fallback_llm"] = _build_llm(fallback_settings)
        return cast("LLMServiceBase", self._instances["fallback_llm"])

    async def close_all(self) -> None:
        """Close all service connections."""
        for name, instance in self._instances.items():
            close = getattr(instance, "close", None)
            if close is None:
                continue
            try:
                result = close()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    "Error closing service", extra={"service": name, "error": str(e)}
                )

        self._instances.clear()


class _FactoryHolder:
    """Holder for the factory singleton to avoid global statements."""

    instance: InfrastructureFactory | None = None


def get_factory(settings: Settings | None = None) -> InfrastructureFactory:
    """Get or create the infrastructure factory singleton.

    Args:
        settings: Settings to use. Required on first call.

    Returns:
        Infrastructure factory instance.

    Raises:
        ValueError: If settings not provided on first call.
    """
    if _FactoryHolder.instance is None:
        if settings is None:
            raise ValueError("Settings required to initialize factory")
        _FactoryHolder.instance = InfrastructureFactory(settings)

    return _FactoryHolder.instance


def reset_factory() -> None:
    """Reset the factory singleton (for testing)."""
    _FactoryHolder.instance = None
