"""Configuration models for the quadpool engine.

Defines the Pydantic v2 model for job admission, worker pool sizing,
partitioning and job isolation, plus YAML loading.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from quadpool.core.logging import get_logger
from quadpool.core.partition import PartitionStrategy

_logger = get_logger("engine.config")


class EngineConfig(BaseModel):
    """Top-level configuration for the job scheduler and worker pools.

    ``job_capacity`` and ``worker_count`` are independent: up to
    ``job_capacity`` jobs run at once, each with its own ``worker_count``
    threads.
    """

    job_capacity: int = Field(
        default=32,
        ge=1,
        le=1024,
        description="Maximum jobs in flight at once. Submissions beyond this "
        "are rejected with reason 'at_capacity'.",
    )
    worker_count: int = Field(
        default=32,
        ge=1,
        le=1024,
        description="Worker threads started per job.",
    )
    partition_strategy: PartitionStrategy = Field(
        default=PartitionStrategy.CONTIGUOUS,
        description="How a job's slices are split among workers: "
        "'contiguous' blocks or 'strided' interleaving.",
    )
    isolation: Literal["process", "thread"] = Field(
        default="process",
        description="Execution unit per job. 'process' runs each job in its own "
        "child process so a crash cannot touch sibling jobs; 'thread' runs it "
        "on a dedicated thread of this process.",
    )
    start_method: Literal["fork", "forkserver", "spawn"] | None = Field(
        default=None,
        description="multiprocessing start method for 'process' isolation. "
        "None picks forkserver where available, else spawn; "
        "fork is only used when chosen explicitly.",
    )
    max_job_history: int = Field(
        default=1000,
        ge=1,
        description="Maximum finished jobs kept in memory. Oldest are evicted first.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum log level for structlog output.",
    )
    log_file: Path | None = Field(
        default=None,
        description="Log file path. None means log to stderr only.",
    )
    config_file: Path | None = Field(
        default=None,
        description="YAML file this config was loaded from. Set by load_config().",
    )

    @model_validator(mode="after")
    def _warn_oversubscription(self) -> EngineConfig:
        """Warn when the configuration could start a very large number of threads."""
        total_threads = self.job_capacity * self.worker_count
        if total_threads > 4096:
            _logger.warning(
                "config.oversubscribed",
                job_capacity=self.job_capacity,
                worker_count=self.worker_count,
                max_threads=total_threads,
            )
        return self


def load_config(config_file: Path | None) -> EngineConfig:
    """Load EngineConfig from a YAML file, or return defaults.

    Returns defaults when ``config_file`` is None or does not exist.

    Raises:
        pydantic.ValidationError: If the file contains invalid settings.
        yaml.YAMLError: If the file is not valid YAML.
    """
    if config_file and config_file.exists():
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        config = EngineConfig.model_validate(data)
        config.config_file = config_file.resolve()
        return config
    return EngineConfig()


__all__ = ["EngineConfig", "load_config"]
