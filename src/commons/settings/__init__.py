"""Settings management module."""

from src.commons.settings.loader import SettingsLoader, get_settings, reset_settings
from src.commons.settings.models import (
    AppSettings,
    DocumentCollectionSettings,
    DocumentDBSettings,
    FallbackLLMSettings,
    LangfuseSettings,
    LLMSettings,
    MediaSettings,
    PipelineSettings,
    QueueSettings,
    RetrySettings,
    ServerSettings,
    Settings,
    TelemetrySettings,
    TranscriptionSettings,
    UploadSettings,
    UsageSettings,
    WorkerSettings,
    YouTubeSettings,
)

__all__ = [
    # Loader
    "SettingsLoader",
    "get_settings",
    "reset_settings",
    # Main settings
    "Settings",
    "AppSettings",
    "ServerSettings",
    # Storage
    "DocumentDBSettings",
    "DocumentCollectionSettings",
    # Remote providers
    "TranscriptionSettings",
    "LLMSettings",
    "FallbackLLMSettings",
    "YouTubeSettings",
    "MediaSettings",
    # Pipeline
    "PipelineSettings",
    "RetrySettings",
    "QueueSettings",
    "WorkerSettings",
    "UploadSettings",
    "UsageSettings",
    # Telemetry
    "TelemetrySettings",
    "LangfuseSettings",
]
