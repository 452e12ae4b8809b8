"""Application layer - use cases and orchestration.

This layer contains:
- Services: submission, pipeline orchestration and queue workers
- DTOs: Data transfer objects for API boundaries
"""

from src.application.dtos import (
    SubmitYouTubeRequest,
    VideoDetailResponse,
    VideoResponse,
    VideoStatusResponse,
)
from src.application.services import (
    IngestionService,
    PipelineWorker,
    SummarizationClient,
    VideoArtifactStore,
    VideoPipelineOrchestrator,
    WorkerPool,
)

__all__ = [
    # DTOs
    "SubmitYouTubeRequest",
    "VideoDetailResponse",
    "VideoResponse",
    "VideoStatusResponse",
    # Services
    "IngestionService",
    "PipelineWorker",
    "SummarizationClient",
    "VideoArtifactStore",
    "VideoPipelineOrchestrator",
    "WorkerPool",
]
