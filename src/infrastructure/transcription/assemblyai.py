"""AssemblyAI implementation of the transcription service."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import httpx

from src.commons.telemetry import get_logger
from src.domain.exceptions import RemoteRejected, RemoteTransient
from src.domain.models.transcript import (
    Chapter,
    Entity,
    Highlight,
    SentimentSpan,
    SpeakerTurn,
    TimeRange,
    Transcript,
    TranscriptWord,
)
from src.infrastructure.media.base import MediaProbeBase
from src.infrastructure.transcription.base import TranscriptionServiceBase

STAGE = "transcription"

DEFAULT_FEATURES: dict[str, Any] = {
    "speaker_labels": True,
    "auto_chapters": True,
    "entity_detection": True,
    "sentiment_analysis": True,
    "auto_highlights": True,
    "punctuate": True,
    "format_text": True,
    "language_detection": True,
}


def _seconds(milliseconds: float | None) -> float:
    return max(float(milliseconds or 0) / 1000, 0.0)


def _confidence(value: float | None) -> float:
    return min(max(float(value or 0), 0.0), 1.0)


def normalize_transcript(payload: dict[str, Any]) -> Transcript:
    """Map an AssemblyAI transcript payload onto the Transcript model.

    Millisecond offsets become seconds. A missing language defaults to
    English and a missing confidence to zero.
    """
    highlights = (payload.get("auto_highlights_result") or {}).get("results") or []
    return Transcript(
        text=payload.get("text") or "",
        language=payload.get("language_code") or "en",
        confidence=_confidence(payload.get("confidence")),
        audio_duration=payload.get("audio_duration"),
        provider_job_id=payload.get("id"),
        words=[
            TranscriptWord(
                start=_seconds(word.get("start")),
                end=_seconds(word.get("end")),
                text=word.get("text", ""),
                confidence=_confidence(word.get("confidence")),
            )
            for word in payload.get("words") or []
        ],
        speakers=[
            SpeakerTurn(
                speaker=str(turn.get("speaker", "")),
                start=_seconds(turn.get("start")),
                end=_seconds(turn.get("end")),
                text=turn.get("text", ""),
                confidence=_confidence(turn.get("confidence")),
            )
            for turn in payload.get("utterances") or []
        ],
        chapters=[
            Chapter(
                start=_seconds(chapter.get("start")),
                end=_seconds(chapter.get("end")),
                headline=chapter.get("headline", ""),
                gist=chapter.get("gist", ""),
                summary=chapter.get("summary", ""),
            )
            for chapter in payload.get("chapters") or []
        ],
        entities=[
            Entity(
                start=_seconds(entity.get("start")),
                end=_seconds(entity.get("end")),
                text=entity.get("text", ""),
                entity_type=entity.get("entity_type", "unknown"),
            )
            for entity in payload.get("entities") or []
        ],
        sentiment=[
            SentimentSpan(
                start=_seconds(span.get("start")),
                end=_seconds(span.get("end")),
                text=span.get("text", ""),
                sentiment=str(span.get("sentiment", "neutral")).lower(),
                confidence=_confidence(span.get("confidence")),
            )
            for span in payload.get("sentiment_analysis_results") or []
        ],
        highlights=[
            Highlight(
                text=item.get("text", ""),
                count=int(item.get("count") or 0),
                rank=float(item.get("rank") or 0),
                timestamps=[
                    TimeRange(start=_seconds(ts.get("start")), end=_seconds(ts.get("end")))
                    for ts in item.get("timestamps") or []
                ],
            )
            for item in highlights
        ],
    )


class AssemblyAITranscription(TranscriptionServiceBase):
    """AssemblyAI REST API client.

    Flow: upload the audio bytes, submit a transcript job that references
    the upload, poll until the job completes, then normalize the payload.
    """

    def __init__(
        self,
        api_key: str,
        media_probe: MediaProbeBase,
        base_url: str = "https://api.assemblyai.com/v2",
        poll_interval_seconds: float = 5.0,
        max_poll_attempts: int = 60,
        features: dict[str, Any] | None = None,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the AssemblyAI client.

        Args:
            api_key: AssemblyAI API key.
            media_probe: Probe used to check the audio track before upload.
            base_url: API root.
            poll_interval_seconds: Wait between status polls.
            max_poll_attempts: Polls before giving up with a transient error.
            features: Default transcript features. Caller options override them.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured HTTP client.
            sleep: Awaitable sleep used between polls.
        """
        self._base_url = base_url.rstrip("/")
        self._media_probe = media_probe
        self._poll_interval = poll_interval_seconds
        self._max_poll_attempts = max_poll_attempts
        self._features = dict(features if features is not None else DEFAULT_FEATURES)
        self._sleep = sleep
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._headers = {"authorization": api_key}
        self._logger = get_logger(__name__)

    @property
    def provider_name(self) -> str:
        return "assemblyai"

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send one API request and classify failures."""
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(
                method, f"{self._base_url}{path}", headers=headers, **kwargs
            )
        except httpx.TransportError as e:
            raise RemoteTransient(
                f"AssemblyAI request failed: {e!r}", STAGE, self.provider_name
            ) from e

        if response.status_code == 429 or response.status_code >= 500:
            raise RemoteTransient(
                f"AssemblyAI returned HTTP {response.status_code}",
                STAGE,
                self.provider_name,
            )
        if response.status_code >= 400:
            raise RemoteRejected(
                f"AssemblyAI returned HTTP {response.status_code}: {response.text[:200]}",
                STAGE,
                self.provider_name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteRejected(
                "AssemblyAI returned a non-JSON body", STAGE, self.provider_name
            ) from e
        if not isinstance(data, dict):
            raise RemoteRejected(
                "AssemblyAI returned an unexpected body", STAGE, self.provider_name
            )
        return data

    async def upload(self, data: bytes) -> str:
        """Upload raw audio and return the provider's upload URL."""
        body = await self._request(
            "POST",
            "/upload",
            content=data,
            headers={"content-type": "application/octet-stream"},
        )
        upload_url = body.get("upload_url")
        if not upload_url:
            raise RemoteRejected("Upload response has no upload_url", STAGE, self.provider_name)
        return str(upload_url)

    async def submit(self, audio_url: str, features: dict[str, Any]) -> str:
        """Submit a transcript job and return its ID."""
        body = await self._request(
            "POST", "/transcript", json={"audio_url": audio_url, **features}
        )
        job_id = body.get("id")
        if not job_id:
            raise RemoteRejected("Submit response has no job id", STAGE, self.provider_name)
        return str(job_id)

    async def get_status(self, job_id: str) -> dict[str, Any]:
        """Fetch the current transcript job payload."""
        return await self._request("GET", f"/transcript/{job_id}")

    async def poll(self, job_id: str) -> dict[str, Any]:
        """Poll a job until it completes.

        Raises:
            RemoteRejected: The provider reported an error status.
            RemoteTransient: The job did not finish within the poll budget.
        """
        for attempt in range(1, self._max_poll_attempts + 1):
            payload = await self.get_status(job_id)
            status = payload.get("status")
            if status == "completed":
                return payload
            if status == "error":
                raise RemoteRejected(
                    payload.get("error") or "Transcription failed",
                    STAGE,
                    self.provider_name,
                )
            self._logger.debug(
                "Transcript not ready",
                extra={"job_id": job_id, "status": status, "attempt": attempt},
            )
            if attempt < self._max_poll_attempts:
                await self._sleep(self._poll_interval)

        raise RemoteTransient(
            f"Transcription timed out after {self._max_poll_attempts} polls",
            STAGE,
            self.provider_name,
        )

    def _features_for(self, options: dict[str, Any] | None) -> dict[str, Any]:
        features = {**self._features, **(options or {})}
        if features.get("language_code"):
            features["language_detection"] = False
        return features

    async def _run(self, audio_url: str, options: dict[str, Any] | None) -> Transcript:
        job_id = await self.submit(audio_url, self._features_for(options))
        self._logger.info("Transcription job submitted", extra={"provider_job_id": job_id})
        payload = await self.poll(job_id)
        transcript = normalize_transcript(payload)
        self._logger.info(
            "Transcription completed",
            extra={
                "provider_job_id": job_id,
                "language": transcript.language,
                "words": len(transcript.words),
            },
        )
        return transcript

    async def transcribe(
        self,
        file_path: Path,
        options: dict[str, Any] | None = None,
    ) -> Transcript:
        await self._media_probe.require_audio(file_path, STAGE)

        loop = asyncio.get_running_loop()
        data = await loop.run_in_executor(None, file_path.read_bytes)
        upload_url = await self.upload(data)
        return await self._run(upload_url, options)

    async def transcribe_url(
        self,
        audio_url: str,
        options: dict[str, Any] | None = None,
    ) -> Transcript:
        return await self._run(audio_url, options)

    async def close(self) -> None:
        await self._client.aclose()
