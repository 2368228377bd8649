"""Pytest fixtures for quadpool tests."""

from __future__ import annotations

import logging
import math
from collections.abc import Generator

import pytest
import structlog

from quadpool.core.job import IntegrationJob
from quadpool.engine.config import EngineConfig


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    CLI invocations and configure_logging() mutate process-wide logging;
    this keeps tests isolated from each other.
    """
    import quadpool.cli.helpers as cli_helpers
    import quadpool.core.logging as quadpool_logging

    cli_helpers.reset_logging_state()
    structlog.reset_defaults()
    original_settings = quadpool_logging._settings

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_logging_state()
    structlog.reset_defaults()
    quadpool_logging._settings = original_settings
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def thread_config() -> EngineConfig:
    """Small engine config running jobs on threads (no child processes)."""
    return EngineConfig(job_capacity=3, worker_count=4, isolation="thread")


@pytest.fixture
def sine_job() -> IntegrationJob:
    """sin(x) over [0, pi]; the exact integral is 2."""
    return IntegrationJob.create(0.0, math.pi, 1000, "identity-trig")
