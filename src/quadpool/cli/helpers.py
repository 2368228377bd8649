"""Shared utilities for quadpool CLI commands.

- Logging option state and one-shot configuration
- Engine config assembly from YAML plus command-line overrides
- Query-line parsing for the interactive loop
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from quadpool.core.errors import InvalidJobError
from quadpool.core.job import IntegrationJob
from quadpool.core.logging import configure_logging, get_logger
from quadpool.engine.config import EngineConfig, load_config

_logger = get_logger("cli")

QUERY_PROMPT = "Query: [start] [end] [numSteps] [funcId]"


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """Logging options collected from the global CLI callbacks."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    _log_config.level = level.upper()  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    """Send logs to ``path`` as JSON lines, keeping console output on stderr."""
    _log_config.file = path
    if path:
        _log_config.format = "both"


def set_log_format(fmt: str) -> None:
    _log_config.format = fmt.lower()  # type: ignore[assignment]


def get_log_config() -> CliLoggingConfig:
    return _log_config


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options, once per session.

    Raises:
        typer.Exit: If the logging options are inconsistent.
    """
    if _log_config.configured:
        return
    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except (ValueError, AttributeError) as e:
        console.print(f"[red]Logging configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def reset_logging_state() -> None:
    """Reset logging state (for tests)."""
    global _log_config
    _log_config = CliLoggingConfig()


# =============================================================================
# Engine configuration
# =============================================================================


def build_engine_config(
    console: Console,
    config_file: Path | None,
    **overrides: Any,
) -> EngineConfig:
    """Load the YAML config (if any) and apply non-None CLI overrides.

    Raises:
        typer.Exit: If the file or the overrides are invalid.
    """
    try:
        config = load_config(config_file)
        updates = {k: v for k, v in overrides.items() if v is not None}
        if updates:
            config = EngineConfig.model_validate({**config.model_dump(), **updates})
    except (ValidationError, yaml.YAMLError, OSError) as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None
    _logger.debug(
        "cli.engine_config",
        job_capacity=config.job_capacity,
        worker_count=config.worker_count,
        partition_strategy=config.partition_strategy.value,
        isolation=config.isolation,
    )
    return config


# =============================================================================
# Query parsing
# =============================================================================


def parse_query(line: str) -> IntegrationJob:
    """Parse ``"start end numSteps funcId"`` into a job.

    Raises:
        InvalidJobError: If the line is malformed or describes an invalid job.
    """
    fields = line.split()
    if len(fields) != 4:
        raise InvalidJobError(f"Expected 4 fields (start end numSteps funcId), got {len(fields)}")
    start_text, end_text, steps_text, func_text = fields
    try:
        range_start = float(start_text)
        range_end = float(end_text)
        num_steps = int(steps_text)
    except ValueError as e:
        raise InvalidJobError(f"Malformed number in query: {e}") from None
    return IntegrationJob.create(range_start, range_end, num_steps, func_text)


__all__ = [
    "QUERY_PROMPT",
    "CliLoggingConfig",
    "build_engine_config",
    "configure_global_logging",
    "get_log_config",
    "parse_query",
    "reset_logging_state",
    "set_log_file",
    "set_log_format",
    "set_log_level",
]
