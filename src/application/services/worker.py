"""Queue consumers that feed jobs to the pipeline orchestrator."""

import asyncio
import contextlib

from src.application.services.artifact_store import VideoArtifactStore
from src.application.services.pipeline import VideoPipelineOrchestrator
from src.commons.telemetry import LogContext, get_logger
from src.domain.exceptions import (
    Exhausted,
    InvalidStageTransition,
    PreconditionFailed,
    RemoteRejected,
    StageRetriesExhausted,
)
from src.domain.models.job import Job
from src.domain.value_objects.retry_policy import RetryPolicy
from src.infrastructure.queue.base import JobQueueBase


def _root_reason(error: BaseException) -> str:
    """Unwrap in-process retry failures down to the provider's own reason."""
    while isinstance(error, StageRetriesExhausted):
        error = error.last_error
    return getattr(error, "reason", None) or str(error)


class PipelineWorker:
    """Processes one job at a time and settles it with the queue.

    Outcomes:
    - success: ack
    - PreconditionFailed or RemoteRejected: the video is already failed,
      the job is failed too
    - anything else: nack with the queue backoff while deliveries remain,
      otherwise the video is marked failed with an Exhausted error
    """

    def __init__(
        self,
        queue: JobQueueBase,
        orchestrator: VideoPipelineOrchestrator,
        store: VideoArtifactStore,
        queue_retry: RetryPolicy | None = None,
    ) -> None:
        self._queue = queue
        self._orchestrator = orchestrator
        self._store = store
        self._queue_retry = queue_retry or RetryPolicy(base_delay_seconds=5.0)
        self._logger = get_logger(__name__)

    async def run_once(self) -> bool:
        """Claim and process a single job.

        Returns:
            False if no job was available.
        """
        job = await self._queue.dequeue()
        if job is None:
            return False
        await self.handle(job)
        return True

    async def handle(self, job: Job) -> None:
        with LogContext(job_id=job.id, video_id=job.video_id):
            self._logger.info("Job delivered", extra={"delivery": job.attempts})
            try:
                await self._orchestrator.process_video(job.video_id, job.file_path)
            except (PreconditionFailed, RemoteRejected) as e:
                await self._queue.fail(job, str(e))
                return
            except InvalidStageTransition as e:
                # Another writer moved the video on; this delivery is stale
                self._logger.warning("Job superseded", extra={"error": str(e)})
                await self._queue.ack(job)
                return
            except Exception as e:
                await self._retry_or_give_up(job, e)
                return

            if not await self._queue.ack(job):
                self._logger.warning("Job claim was lost before ack")

    async def _retry_or_give_up(self, job: Job, error: Exception) -> None:
        stage = getattr(error, "stage", None)
        if self._queue_retry.has_attempts_left(job.attempts):
            delay = self._queue_retry.delay_for(job.attempts)
            self._logger.warning(
                "Job failed, redelivering later",
                extra={"delivery": job.attempts, "retry_after": delay, "error": str(error)},
            )
            await self._queue.nack(job, retry_after=delay, error=str(error))
            return

        exhausted = Exhausted(
            f"Gave up after {job.attempts} deliveries: {_root_reason(error)}",
            stage,
            job.attempts,
        )
        self._logger.error("Job retries exhausted", extra={"error": str(exhausted)})
        await self._store.mark_failed(job.video_id, str(exhausted))
        await self._queue.fail(job, str(exhausted))


class WorkerPool:
    """N concurrent consumers, each running one job to completion at a time."""

    def __init__(
        self,
        worker: PipelineWorker,
        concurrency: int = 2,
        idle_poll_seconds: float = 1.0,
    ) -> None:
        self._worker = worker
        self._concurrency = concurrency
        self._idle_poll = idle_poll_seconds
        self._tasks: list[asyncio.Task[None]] = []
        self._shutdown = asyncio.Event()
        self._logger = get_logger(__name__)

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        if self.is_running:
            return
        self._shutdown.clear()
        self._tasks = [
            asyncio.create_task(self._consume(index), name=f"pipeline-worker-{index}")
            for index in range(self._concurrency)
        ]
        self._logger.info("Worker pool started", extra={"concurrency": self._concurrency})

    async def stop(self, timeout: float | None = 30.0) -> None:
        """Stop taking jobs and wait for in-flight ones to settle.

        Workers still busy after the timeout are cancelled; their jobs are
        redelivered once the lease runs out.
        """
        self._shutdown.set()
        if not self._tasks:
            return
        _, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        self._logger.info(
            "Worker pool stopped", extra={"cancelled": len(pending)}
        )

    async def drain(self) -> int:
        """Process jobs until none is deliverable.

        Returns:
            Number of jobs handled.
        """
        handled = 0
        while await self._worker.run_once():
            handled += 1
        return handled

    async def _consume(self, index: int) -> None:
        while not self._shutdown.is_set():
            try:
                handled = await self._worker.run_once()
            except Exception as e:
                self._logger.exception(
                    "Worker loop error", extra={"worker": index, "error": str(e)}
                )
                handled = False
            if not handled:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._shutdown.wait(), self._idle_poll)
