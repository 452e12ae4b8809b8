"""Pipeline job queue."""

from src.infrastructure.queue.base import JobQueueBase
from src.infrastructure.queue.document_queue import DocumentJobQueue

__all__ = [
    # Base classes
    "JobQueueBase",
    # Implementations
    "DocumentJobQueue",
]
