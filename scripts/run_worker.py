#!/usr/bin/env python3
"""
Run the video pipeline worker pool.

Consumes jobs from the pipeline queue and drives each video through
transcription, summarization and question generation.

Usage:
    python scripts/run_worker.py [--concurrency N] [--config-dir DIR] [--env ENV] [--once]

Options:
    --concurrency   Number of concurrent consumers (default from settings)
    --config-dir    Directory holding appsettings*.json
    --env           Settings environment (dev, staging, prod)
    --once          Process every deliverable job, then exit
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass
from pathlib import Path

from src.application.services.builders import build_worker_pool, ensure_indexes
from src.commons.settings.loader import get_settings
from src.commons.telemetry import (
    configure_logging,
    get_logger,
    init_langfuse,
    shutdown_langfuse,
)
from src.infrastructure.factory import InfrastructureFactory

logger = get_logger("src.worker")


@dataclass
class WorkerArgs:
    """Parsed command line arguments."""

    concurrency: int | None
    config_dir: Path | None
    env: str | None
    once: bool


def parse_args(argv: list[str] | None = None) -> WorkerArgs:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run the video pipeline worker pool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Number of concurrent consumers",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding appsettings*.json",
    )
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default=None,
        help="Settings environment",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process every deliverable job, then exit",
    )
    args = parser.parse_args(argv)
    if args.concurrency is not None and args.concurrency < 1:
        parser.error("--concurrency must be at least 1")
    return WorkerArgs(
        concurrency=args.concurrency,
        config_dir=args.config_dir,
        env=args.env,
        once=args.once,
    )


async def run(args: WorkerArgs) -> int:
    """Run the pool until a shutdown signal, or drain once.

    Returns:
        Number of jobs handled when draining, otherwise 0.
    """
    settings = get_settings(args.config_dir, args.env)
    configure_logging(
        level=settings.telemetry.log_level or settings.app.log_level,
        format_type=settings.telemetry.log_format,
        logger_name="src",
    )
    init_langfuse(settings.langfuse)

    factory = InfrastructureFactory(settings)
    try:
        await ensure_indexes(factory)
        pool = build_worker_pool(factory, concurrency=args.concurrency)

        if args.once:
            handled = await pool.drain()
            logger.info("Queue drained", extra={"handled": handled})
            return handled

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        await pool.start()
        await stop.wait()
        logger.info("Shutdown requested, waiting for in-flight jobs")
        await pool.stop()
        return 0
    finally:
        await factory.close_all()
        shutdown_langfuse()


def main() -> None:
    """Main entry point."""
    args = parse_args()
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
