"""Structured logging infrastructure for quadpool.

Provides structured logging using structlog with quadpool-specific context
such as job_id and worker_index. Supports console and JSON output, with an
optional rotating log file.

Example usage:
    from quadpool.core.logging import get_logger, configure_logging, with_context

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("scheduler")
    logger.info("job_admitted", in_flight=3)

    # Correlate entries produced while a job runs
    with with_context(ExecutionContext(job_id="gaussian-bell-1a2b3c4d")):
        logger.debug("partition_built", subtasks=32)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console", "both"]


@dataclass(frozen=True)
class LoggingSettings:
    """The arguments of the last ``configure_logging()`` call.

    Kept so that job processes can re-apply the parent's configuration
    from their executor initializer.
    """

    level: LogLevel = "WARNING"
    format: LogFormat = "console"
    file_path: Path | None = None
    max_file_size_mb: int = 50
    backup_count: int = 5
    include_timestamps: bool = True


_settings = LoggingSettings()


def logging_settings() -> LoggingSettings:
    """Return the settings most recently applied by ``configure_logging()``."""
    return _settings


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable context for correlating log entries of one job.

    Attributes:
        job_id: Identifier assigned by the scheduler at admission.
        worker_index: Index of the pool worker, None outside a worker thread.
        component: Component name for the current operation.
    """

    job_id: str
    worker_index: int | None = None
    component: str = "unknown"

    def with_worker(self, worker_index: int) -> ExecutionContext:
        """Create a new context for one worker of the same job."""
        return ExecutionContext(
            job_id=self.job_id,
            worker_index=worker_index,
            component=self.component,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging (None values dropped)."""
        return {k: v for k, v in asdict(self).items() if v is not None}


# ContextVar values do not flow into new threads; worker threads set their own.
_current_context: ContextVar[ExecutionContext | None] = ContextVar(
    "quadpool_context", default=None
)


def get_current_context() -> ExecutionContext | None:
    """Get the current ExecutionContext if set."""
    return _current_context.get()


@contextmanager
def with_context(ctx: ExecutionContext) -> Iterator[ExecutionContext]:
    """Set ExecutionContext for the duration of a block.

    Args:
        ctx: The ExecutionContext to use for the block.

    Yields:
        The ExecutionContext that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds ExecutionContext fields to log entries.

    Explicitly bound keys take precedence over context fields.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class QuadpoolLogger:
    """Logger wrapper around structlog bound to a component name.

    The underlying structlog logger is fetched on every call so that loggers
    created at import time respect a later ``configure_logging()``.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> QuadpoolLogger:
        """Create a new logger with additional bound context."""
        new_logger = QuadpoolLogger.__new__(QuadpoolLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an error with traceback. Call from within an exception handler."""
        self._get_logger().exception(event, **kw)


def _build_processors(include_timestamps: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,  # Filter before processing
        structlog.stdlib.add_log_level,
        _add_context,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        # Rendering happens per handler, see _formatter()
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ])
    return processors


def _formatter(renderer: Processor, *extra: Processor) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *extra,
            renderer,
        ],
    )


def configure_logging(
    level: LogLevel = "WARNING",
    format: LogFormat = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 50,
    backup_count: int = 5,
    include_timestamps: bool = True,
) -> None:
    """Configure quadpool structured logging.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable stderr output, "json" for JSON
            lines (to ``file_path`` if given, otherwise stdout), "both" for
            console on stderr plus JSON to ``file_path``.
        file_path: Optional log file, rotated at ``max_file_size_mb``.
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to include ISO8601 timestamps.

    Raises:
        ValueError: If format="both" but file_path is not provided.
    """
    global _settings

    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = getattr(logging, level)
    handlers: list[logging.Handler] = []

    if format in ("console", "both"):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            _formatter(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
        )
        handlers.append(console_handler)

    if format in ("json", "both"):
        json_handler: logging.Handler
        if file_path is not None:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(
            _formatter(structlog.processors.JSONRenderer(), structlog.processors.format_exc_info)
        )
        handlers.append(json_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    # cache_logger_on_first_use=False so module-level loggers pick up reconfiguration
    structlog.configure(
        processors=_build_processors(include_timestamps),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    _settings = LoggingSettings(
        level=level,
        format=format,
        file_path=file_path,
        max_file_size_mb=max_file_size_mb,
        backup_count=backup_count,
        include_timestamps=include_timestamps,
    )


def apply_logging_settings(settings: LoggingSettings) -> None:
    """Re-apply a settings snapshot, e.g. inside a freshly started job process."""
    configure_logging(**asdict(settings))


def get_logger(component: str, **initial_context: Any) -> QuadpoolLogger:
    """Get a quadpool logger for a component.

    Args:
        component: The component name (e.g., "scheduler", "pool").
        **initial_context: Additional context to bind.
    """
    return QuadpoolLogger(component, **initial_context)


__all__ = [
    "ExecutionContext",
    "LoggingSettings",
    "QuadpoolLogger",
    "apply_logging_settings",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "logging_settings",
    "with_context",
]
