"""Wiring of application services from the infrastructure factory.

Shared by the API dependencies and the worker entry point.
"""

from src.application.services.artifact_store import VideoArtifactStore
from src.application.services.artifacts import ArtifactService
from src.application.services.ingestion import IngestionService
from src.application.services.pipeline import PipelineOptions, VideoPipelineOrchestrator
from src.application.services.summarization import SummarizationClient
from src.application.services.worker import PipelineWorker, WorkerPool
from src.commons.settings.models import RetrySettings
from src.domain.value_objects.retry_policy import RetryPolicy
from src.infrastructure.factory import InfrastructureFactory


def retry_policy_from(settings: RetrySettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.max_attempts,
        base_delay_seconds=settings.base_delay_seconds,
        max_delay_seconds=settings.max_delay_seconds,
    )


def build_artifact_store(factory: InfrastructureFactory) -> VideoArtifactStore:
    collections = factory.settings.document_db.collections
    return VideoArtifactStore(
        document_db=factory.get_document_db(),
        videos_collection=collections.videos,
        users_collection=collections.users,
    )


def build_ingestion_service(factory: InfrastructureFactory) -> IngestionService:
    settings = factory.settings
    return IngestionService(
        store=build_artifact_store(factory),
        queue=factory.get_job_queue(),
        media_probe=factory.get_media_probe(),
        youtube_resolver=factory.get_youtube_resolver(),
        usage_enforced=settings.usage.enforce,
        monthly_limit=settings.usage.monthly_limit,
        allowed_extensions=settings.uploads.allowed_extensions,
    )


def build_summarization_client(factory: InfrastructureFactory) -> SummarizationClient:
    llm_settings = factory.settings.llm
    return SummarizationClient(
        llm=factory.get_llm_service(),
        fallback_llm=factory.get_fallback_llm_service(),
        temperature=llm_settings.temperature,
        max_tokens=llm_settings.max_tokens,
    )


def build_artifact_service(factory: InfrastructureFactory) -> ArtifactService:
    return ArtifactService(
        store=build_artifact_store(factory),
        summarization=build_summarization_client(factory),
    )


def build_orchestrator(factory: InfrastructureFactory) -> VideoPipelineOrchestrator:
    pipeline_settings = factory.settings.pipeline
    return VideoPipelineOrchestrator(
        store=build_artifact_store(factory),
        transcription=factory.get_transcription_service(),
        summarization=build_summarization_client(factory),
        retry_policy=retry_policy_from(pipeline_settings.retry),
        options=PipelineOptions.from_settings(pipeline_settings),
    )


def build_worker_pool(
    factory: InfrastructureFactory,
    concurrency: int | None = None,
) -> WorkerPool:
    settings = factory.settings
    worker = PipelineWorker(
        queue=factory.get_job_queue(),
        orchestrator=build_orchestrator(factory),
        store=build_artifact_store(factory),
        queue_retry=retry_policy_from(settings.pipeline.queue_retry),
    )
    return WorkerPool(
        worker,
        concurrency=concurrency or settings.worker.concurrency,
        idle_poll_seconds=settings.worker.idle_poll_seconds,
    )


async def ensure_indexes(factory: InfrastructureFactory) -> None:
    """Create the indexes the store and queue rely on."""
    await build_artifact_store(factory).ensure_indexes()
    await factory.get_job_queue().ensure_indexes()
