"""Summary and content analysis artifacts."""

import math
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

WORDS_PER_MINUTE = 200


class SummaryType(str, Enum):
    """Prompt variants for summary generation."""

    BRIEF = "brief"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"
    BULLET_POINTS = "bullet_points"
    KEY_INSIGHTS = "key_insights"


class Summary(BaseModel):
    """Summary artifact written once by the summarization stage."""

    text: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    model: str = Field(description="Identifier of the model that produced the text")
    summary_type: SummaryType = SummaryType.DETAILED
    language: str = "en"
    word_count: int = Field(default=0, ge=0)
    reading_time_minutes: int = Field(default=0, ge=0)

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        model: str,
        summary_type: SummaryType = SummaryType.DETAILED,
        language: str = "en",
    ) -> "Summary":
        """Build a summary, deriving word count and reading time from text."""
        words = len(text.split())
        return cls(
            text=text,
            model=model,
            summary_type=summary_type,
            language=language,
            word_count=words,
            reading_time_minutes=math.ceil(words / WORDS_PER_MINUTE),
        )


class KeyPoint(BaseModel):
    """An important point extracted from the transcript."""

    point: str
    timestamp: float | None = Field(default=None, ge=0)
    importance: int = Field(default=3, ge=1, le=5)
    category: str = "general"


class Topic(BaseModel):
    """A topic discussed in the video."""

    name: str
    relevance: float = Field(default=0.0, ge=0, le=1)
    mentions: int = Field(default=0, ge=0)
    description: str = ""


class Emotion(BaseModel):
    """A detected emotion with its confidence."""

    emotion: str
    confidence: float = Field(default=0.0, ge=0, le=1)


class SentimentAnalysis(BaseModel):
    """Overall sentiment of the content."""

    overall: str = "neutral"
    confidence: float = Field(default=0.5, ge=0, le=1)
    emotions: list[Emotion] = Field(default_factory=list)
    reasoning: str = ""


class ContentAnalysis(BaseModel):
    """Supplementary analysis produced alongside the summary."""

    key_points: list[KeyPoint] = Field(default_factory=list)
    topics: list[Topic] = Field(default_factory=list)
    sentiment: SentimentAnalysis = Field(default_factory=SentimentAnalysis)
