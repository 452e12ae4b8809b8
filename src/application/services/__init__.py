"""Application services for video submission and pipeline processing."""

from src.application.services.artifact_store import VideoArtifactStore
from src.application.services.artifacts import ArtifactService
from src.application.services.ingestion import IngestionService
from src.application.services.pipeline import PipelineOptions, VideoPipelineOrchestrator
from src.application.services.summarization import SummarizationClient
from src.application.services.worker import PipelineWorker, WorkerPool

__all__ = [
    "ArtifactService",
    "IngestionService",
    "PipelineOptions",
    "PipelineWorker",
    "SummarizationClient",
    "VideoArtifactStore",
    "VideoPipelineOrchestrator",
    "WorkerPool",
]
