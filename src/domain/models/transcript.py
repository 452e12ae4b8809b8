"""Normalized transcript produced by the transcription stage.

All times are expressed in seconds regardless of the provider's units.
"""

from pydantic import BaseModel, Field


class TimeRange(BaseModel):
    """A start/end span in seconds."""

    start: float = Field(ge=0)
    end: float = Field(ge=0)


class TranscriptWord(BaseModel):
    """A single recognized word."""

    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str
    confidence: float = Field(default=0.0, ge=0, le=1)


class SpeakerTurn(BaseModel):
    """A contiguous utterance attributed to one speaker."""

    speaker: str
    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str
    confidence: float = Field(default=0.0, ge=0, le=1)


class Chapter(BaseModel):
    """An automatically detected chapter."""

    start: float = Field(ge=0)
    end: float = Field(ge=0)
    headline: str = ""
    gist: str = ""
    summary: str = ""


class Entity(BaseModel):
    """A named entity mentioned in the audio."""

    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str
    entity_type: str


class SentimentSpan(BaseModel):
    """Sentiment detected for one sentence."""

    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str
    sentiment: str
    confidence: float = Field(default=0.0, ge=0, le=1)


class Highlight(BaseModel):
    """A key phrase and the places it occurs."""

    text: str
    count: int = Field(default=0, ge=0)
    rank: float = 0.0
    timestamps: list[TimeRange] = Field(default_factory=list)


class Transcript(BaseModel):
    """Transcript artifact written once by the transcription stage."""

    text: str = Field(description="Full transcript text")
    language: str = Field(default="en", description="Detected language code")
    confidence: float = Field(default=0.0, ge=0, le=1)
    audio_duration: float | None = Field(default=None, ge=0)
    words: list[TranscriptWord] = Field(default_factory=list)
    speakers: list[SpeakerTurn] = Field(default_factory=list)
    chapters: list[Chapter] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    sentiment: list[SentimentSpan] = Field(default_factory=list)
    highlights: list[Highlight] = Field(default_factory=list)
    provider_job_id: str | None = Field(
        default=None,
        description="Job identifier assigned by the speech-to-text provider",
    )

    @property
    def word_count(self) -> int:
        """Count whitespace-separated words in the text."""
        return len(self.text.split())
