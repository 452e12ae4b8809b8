"""Transcription services."""

from src.infrastructure.transcription.assemblyai import (
    AssemblyAITranscription,
    normalize_transcript,
)
from src.infrastructure.transcription.base import TranscriptionServiceBase

__all__ = [
    # Base classes
    "TranscriptionServiceBase",
    # Implementations
    "AssemblyAITranscription",
    "normalize_transcript",
]
