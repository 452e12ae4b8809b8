"""Telemetry module - logging and LLM tracing."""

from src.commons.telemetry.decorators import LogContext, log_exceptions, timed
from src.commons.telemetry.langfuse_client import (
    create_llm_generation,
    end_llm_generation,
    get_current_trace,
    init_langfuse,
    is_langfuse_enabled,
    langfuse_trace,
    shutdown_langfuse,
)
from src.commons.telemetry.logger import (
    JsonFormatter,
    TextFormatter,
    clear_log_context,
    configure_logging,
    get_correlation_id,
    get_log_context,
    get_logger,
    set_correlation_id,
    set_log_context,
)

__all__ = [
    # Decorators
    "log_exceptions",
    "timed",
    "LogContext",
    # Logger
    "get_logger",
    "configure_logging",
    "JsonFormatter",
    "TextFormatter",
    # Correlation ID
    "get_correlation_id",
    "set_correlation_id",
    # Log Context
    "get_log_context",
    "set_log_context",
    "clear_log_context",
    # Langfuse
    "init_langfuse",
    "shutdown_langfuse",
    "is_langfuse_enabled",
    "langfuse_trace",
    "get_current_trace",
    "create_llm_generation",
    "end_llm_generation",
]
