"""FastAPI application factory and lifespan management."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.dependencies import get_settings, shutdown_services
from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.logging import LoggingMiddleware
from src.api.openapi.routes import health, videos
from src.application.services.builders import build_worker_pool, ensure_indexes
from src.application.services.worker import WorkerPool
from src.commons.telemetry import (
    configure_logging,
    get_logger,
    init_langfuse,
    shutdown_langfuse,
)
from src.commons.telemetry.logger import JsonFormatter, TextFormatter
from src.infrastructure.factory import get_factory

logger = get_logger(__name__)


def _setup_logging() -> None:
    """Configure logging for the application.

    This must be called at module level to ensure our formatters
    are applied before uvicorn starts.
    """
    settings = get_settings()
    log_level = settings.telemetry.log_level or settings.app.log_level
    configure_logging(
        level=log_level,
        format_type=settings.telemetry.log_format,
        logger_name="src",
    )
    logging.getLogger().setLevel(getattr(logging, log_level.upper()))


def _configure_uvicorn_logging() -> None:
    """Configure uvicorn loggers to use our format.

    Called during lifespan when uvicorn handlers are available.
    """
    settings = get_settings()
    log_level = getattr(logging, (settings.telemetry.log_level or settings.app.log_level).upper())
    formatter: logging.Formatter = (
        JsonFormatter() if settings.telemetry.log_format == "json" else TextFormatter()
    )

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        for handler in uvicorn_logger.handlers:
            handler.setFormatter(formatter)
            handler.setLevel(log_level)
        if not uvicorn_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(formatter)
            handler.setLevel(log_level)
            uvicorn_logger.addHandler(handler)
            uvicorn_logger.propagate = False


# Configure logging at module import time
_setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown.

    Creates indexes, starts the embedded worker pool when configured and
    closes every connection on exit.
    """
    _configure_uvicorn_logging()

    settings = get_settings()
    init_langfuse(settings.langfuse)
    factory = get_factory(settings)
    await ensure_indexes(factory)

    pool: WorkerPool | None = None
    if settings.worker.embedded:
        pool = build_worker_pool(factory)
        await pool.start()
    app.state.worker_pool = pool

    yield

    if pool is not None:
        await pool.stop()
    await shutdown_services()
    shutdown_langfuse()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description="Video processing pipeline - transcripts, summaries and quiz questions",
        docs_url="/docs" if settings.server.docs_enabled else None,
        redoc_url="/redoc" if settings.server.docs_enabled else None,
        openapi_url="/openapi.json" if settings.server.docs_enabled else None,
        lifespan=lifespan,
    )

    _configure_middleware(app, settings)
    _register_routes(app, settings)

    return app


def _configure_middleware(app: FastAPI, settings: Any) -> None:
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.middleware("http")(error_handler_middleware)


def _register_routes(app: FastAPI, settings: Any) -> None:
    """Register API routes."""
    prefix = settings.server.api_prefix

    # Health routes (no prefix for standard health checks)
    app.include_router(health.router, tags=["Health"])
    app.include_router(videos.router, prefix=prefix, tags=["Videos"])


# Create default app instance
app = create_app()
