from __future__ import annotations

import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

PROGRAM_NAME = "pibackup"


def _is_progress(record) -> bool:
    """Progress lines are INFO/SUCCESS records; warnings go to stderr instead."""
    return (
        logger.level("INFO").no
        <= record["level"].no
        < logger.level("WARNING").no
    )


def _is_diagnostic(record) -> bool:
    return record["level"].no < logger.level("INFO").no


def setup_logging(
    *,
    quiet: bool = False,
    debug: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup logging sinks for a backup run.

    Sinks:
    - stdout: progress messages as "[pibackup] <message> ...", unless quiet
    - stderr: WARNING and above, message only
    - stderr: DEBUG diagnostics (command lines, rotation moves) when debug
    - backup.log in log_dir: INFO+ history of runs, when log_dir is set

    Args:
        quiet: Suppress progress output
        debug: Enable DEBUG level diagnostics on stderr
        log_dir: Directory for the persistent run log (disabled when None)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "APP"})

    # SINK 1: Progress (stdout) - what the user watches during a run
    if not quiet:
        logger.add(
            sys.stdout,
            level="INFO",
            filter=_is_progress,
            colorize=False,
            format=f"[{PROGRAM_NAME}] {{message}} ...",
        )

    # SINK 2: Errors (stderr) - always shown, even in quiet mode
    logger.add(
        sys.stderr,
        level="WARNING",
        backtrace=False,
        diagnose=False,
        colorize=False,
        format="{message}",
    )

    # SINK 3: Diagnostics (stderr) - only with --debug
    if debug:
        logger.add(
            sys.stderr,
            level="DEBUG",
            filter=_is_diagnostic,
            colorize=False,
            format=(
                "{time:HH:mm:ss} | "
                "{level: <8} | "
                "{extra[source]: <10} | "
                "{extra[job_id]: <15} | "
                "{message}"
            ),
        )

    # SINK 4: Run history - persistent log across backup runs
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "backup.log",
            level="DEBUG" if debug else "INFO",
            rotation="5 MB",
            retention="30 days",
            compression="zip",
            enqueue=True,
            backtrace=False,
            diagnose=False,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[source]: <10} | "
                "{extra[job_id]: <15} | "
                "{message}"
            ),
        )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking a backup run
        tags: Tags for filtering (e.g., ["backup", "storage"])
        source: Source component (e.g., "backup", "rotation")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, **details):
    """
    Context manager for tracking a long-running operation with timing.

    Start, completion and failure are logged at DEBUG level; user-facing
    progress and error reporting stay with the caller.

    Args:
        operation: Operation name (e.g., "backup")
        **details: Operation-specific details to log

    Yields:
        Logger bound with job_id and operation context

    Example:
        with operation_context("backup", target="pi1", drive="/dev/mmcblk0") as log:
            log.info("Dumping /dev/mmcblk0")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = logger.bind(source=operation, job_id=job_id, tags=[operation])

        log.debug(f"{operation.capitalize()} started", **details)

        try:
            yield log
            duration = time.time() - start_time
            log.debug(
                f"{operation.capitalize()} completed",
                duration_seconds=round(duration, 2),
            )
        except Exception as e:
            duration = time.time() - start_time
            log.debug(
                f"{operation.capitalize()} failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.
    """

    @staticmethod
    def for_rotation() -> Logger:
        """Logger for image rotation."""
        return logger.bind(source="rotation", tags=["rotation", "storage"])

    @staticmethod
    def for_commands() -> Logger:
        """Logger for external command execution."""
        return logger.bind(source="commands", tags=["commands"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup and configuration."""
        return logger.bind(source="system", tags=["system"])
