"""Langfuse integration for pipeline and LLM observability."""

from __future__ import annotations

import contextlib
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from langfuse import Langfuse

if TYPE_CHECKING:
    from collections.abc import Generator

    from langfuse.client import StatefulGenerationClient, StatefulTraceClient

    from src.commons.settings.models import LangfuseSettings

logger = logging.getLogger(__name__)


@dataclass
class _LangfuseState:
    client: Langfuse | None = None
    current_trace: ContextVar[Any] = field(
        default_factory=lambda: ContextVar("current_trace", default=None)
    )

    @property
    def enabled(self) -> bool:
        return self.client is not None


_state = _LangfuseState()


def init_langfuse(settings: LangfuseSettings) -> None:
    """Create the process-wide Langfuse client if tracing is configured."""
    if not settings.enabled:
        logger.info("Langfuse is disabled")
        return

    if not settings.public_key or not settings.secret_key:
        logger.warning("Langfuse keys not configured, tracing disabled")
        return

    try:
        _state.client = Langfuse(
            public_key=settings.public_key,
            secret_key=settings.secret_key,
            host=settings.host,
            debug=settings.debug,
            sample_rate=settings.sample_rate,
            flush_at=settings.flush_at,
            flush_interval=settings.flush_interval,
        )
        logger.info("Langfuse initialized", extra={"host": settings.host})
    except Exception as e:
        logger.error("Failed to initialize Langfuse", extra={"error": str(e)})
        _state.client = None


def shutdown_langfuse() -> None:
    """Flush pending events and drop the client."""
    client, _state.client = _state.client, None
    if client is None:
        return
    try:
        client.flush()
        client.shutdown()
        logger.info("Langfuse shutdown successfully")
    except Exception as e:
        logger.error("Error shutting down Langfuse", extra={"error": str(e)})


def is_langfuse_enabled() -> bool:
    """Check if Langfuse tracing is active."""
    return _state.enabled


@contextmanager
def langfuse_trace(
    name: str,
    user_id: str | None = None,
    session_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    tags: list[str] | None = None,
) -> Generator[StatefulTraceClient | None, None, None]:
    """Open a trace that LLM generations in this context attach to.

    Yields None when tracing is disabled, so callers never need to branch.
    """
    if _state.client is None:
        yield None
        return

    try:
        trace = _state.client.trace(
            name=name,
            user_id=user_id,
            session_id=session_id,
            metadata=metadata or {},
            tags=tags or [],
        )
    except Exception as e:
        logger.error("Error creating Langfuse trace", extra={"error": str(e)})
        yield None
        return

    token = _state.current_trace.set(trace)
    try:
        yield trace
    finally:
        with contextlib.suppress(ValueError):
            _state.current_trace.reset(token)


def get_current_trace() -> StatefulTraceClient | None:
    """Get the trace opened by the innermost langfuse_trace, if any."""
    return _state.current_trace.get()


def create_llm_generation(
    name: str,
    model: str,
    input_messages: list[dict[str, Any]],
    model_parameters: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> StatefulGenerationClient | None:
    """Start tracking one LLM call.

    Attaches to the current trace, or opens a standalone one.

    Returns:
        The generation to close with end_llm_generation, or None if disabled.
    """
    if _state.client is None:
        return None

    try:
        parent = _state.current_trace.get() or _state.client.trace(
            name=f"standalone_{name}"
        )
        return parent.generation(
            name=name,
            model=model,
            input=input_messages,
            model_parameters=model_parameters or {},
            metadata=metadata or {},
        )
    except Exception as e:
        logger.error("Error creating LLM generation", extra={"error": str(e)})
        return None


def end_llm_generation(
    generation: StatefulGenerationClient | None,
    output: str | dict[str, Any] | None,
    usage: dict[str, int] | None = None,
    level: str = "DEFAULT",
    status_message: str | None = None,
) -> None:
    """Close an LLM generation with its output, usage or error."""
    if generation is None:
        return
    try:
        generation.end(
            output=output,
            usage=usage,
            level=level,
            status_message=status_message,
        )
    except Exception as e:
        logger.error("Error ending LLM generation", extra={"error": str(e)})
