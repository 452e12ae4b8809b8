"""Shared fixtures for application service tests."""

import asyncio

import pytest

from src.application.services.artifact_store import VideoArtifactStore
from src.application.services.pipeline import PipelineOptions, VideoPipelineOrchestrator
from src.application.services.summarization import SummarizationClient
from src.commons.infrastructure.documentdb import InMemoryDocumentDB
from src.domain.models.transcript import Transcript
from src.domain.models.video import Video
from src.domain.value_objects import RetryPolicy
from src.infrastructure.llm import LLMResponse, LLMServiceBase, LLMUsage
from src.infrastructure.queue import DocumentJobQueue
from src.infrastructure.transcription.base import TranscriptionServiceBase


@pytest.fixture
def document_db():
    return InMemoryDocumentDB()


@pytest.fixture
def store(document_db):
    return VideoArtifactStore(document_db)


@pytest.fixture
async def queue(document_db):
    job_queue = DocumentJobQueue(document_db, collection="pipeline_jobs", lease_seconds=60)
    await job_queue.ensure_indexes()
    return job_queue


@pytest.fixture
def make_video():
    def _make(**overrides):
        data = {"owner": "user-1", "title": "Lecture", "source_file_path": "v1/sample.mp4"}
        data.update(overrides)
        return Video(**data)

    return _make


class ScriptedLLM(LLMServiceBase):
    """LLM double that replays scripted replies.

    Each reply is a string to return or an exception to raise. The last
    reply repeats once the script runs out.
    """

    def __init__(self, *replies, name="scripted"):
        self.replies = list(replies)
        self.calls = []
        self._name = name

    @property
    def provider_name(self):
        return self._name

    @property
    def default_model(self):
        return f"{self._name}-model"

    async def generate(
        self, messages, model=None, temperature=0.7, max_tokens=1024, json_mode=False
    ):
        self.calls.append({"messages": messages, "json_mode": json_mode, "temperature": temperature})
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            content=reply,
            finish_reason="stop",
            usage=LLMUsage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
            model=self.default_model,
        )


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


class ScriptedTranscription(TranscriptionServiceBase):
    """Transcription double that replays scripted results.

    Each result is a Transcript to return or an exception to raise. The
    last result repeats once the script runs out.
    """

    def __init__(self, *results):
        self.results = list(results) or [Transcript(text="hello world", language="en")]
        self.calls = []

    @property
    def provider_name(self):
        return "scripted"

    async def _next(self, source):
        self.calls.append(source)
        await asyncio.sleep(0)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def transcribe(self, file_path, options=None):
        return await self._next(file_path)

    async def transcribe_url(self, audio_url, options=None):
        return await self._next(audio_url)


@pytest.fixture
def scripted_transcription():
    return ScriptedTranscription


async def no_sleep(_seconds):
    return None


@pytest.fixture
def build_orchestrator(store):
    """Wire an orchestrator around scripted providers with instant retries."""

    def _build(transcription, llm, analysis_enabled=False, max_attempts=3):
        return VideoPipelineOrchestrator(
            store=store,
            transcription=transcription,
            summarization=SummarizationClient(llm),
            retry_policy=RetryPolicy(max_attempts=max_attempts, base_delay_seconds=1.0),
            options=PipelineOptions(analysis_enabled=analysis_enabled, question_count=3),
            sleep=no_sleep,
        )

    return _build
