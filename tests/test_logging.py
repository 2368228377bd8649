"""Tests for quadpool.core.logging module."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from quadpool.core.logging import (
    ExecutionContext,
    LoggingSettings,
    QuadpoolLogger,
    configure_logging,
    get_current_context,
    get_logger,
    logging_settings,
    with_context,
)


def _flush_root_handlers() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestExecutionContext:
    """Tests for the per-job logging context."""

    def test_with_worker_keeps_job(self):
        ctx = ExecutionContext(job_id="gaussian-bell-1a2b3c4d", component="pool")
        worker_ctx = ctx.with_worker(7)
        assert worker_ctx.job_id == ctx.job_id
        assert worker_ctx.component == "pool"
        assert worker_ctx.worker_index == 7

    def test_to_dict_drops_none(self):
        assert ExecutionContext(job_id="j").to_dict() == {"job_id": "j", "component": "unknown"}

    def test_with_context_restores_previous(self):
        assert get_current_context() is None
        ctx = ExecutionContext(job_id="j")
        with with_context(ctx):
            assert get_current_context() is ctx
        assert get_current_context() is None


class TestLogger:
    """Tests for QuadpoolLogger."""

    def test_get_logger_binds_component(self):
        logger = get_logger("scheduler", capacity=4)
        assert isinstance(logger, QuadpoolLogger)
        assert logger._context == {"component": "scheduler", "capacity": 4}

    def test_bind_returns_new_logger(self):
        base = get_logger("pool")
        bound = base.bind(job_id="j")
        assert bound is not base
        assert bound._context["job_id"] == "j"
        assert "job_id" not in base._context


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_both_requires_file(self):
        with pytest.raises(ValueError, match="file_path"):
            configure_logging(format="both")

    def test_json_file_includes_context(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "quadpool.log"
        configure_logging(level="INFO", format="json", file_path=log_file)

        logger = get_logger("scheduler")
        with with_context(ExecutionContext(job_id="identity-trig-0000beef")):
            logger.info("job.completed", total_area=2.0)
        logger.debug("job.hidden")
        _flush_root_handlers()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert len(lines) == 1
        entry = lines[0]
        assert entry["event"] == "job.completed"
        assert entry["component"] == "scheduler"
        assert entry["job_id"] == "identity-trig-0000beef"
        assert entry["total_area"] == 2.0
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_explicit_keys_win_over_context(self, tmp_path: Path):
        log_file = tmp_path / "quadpool.log"
        configure_logging(level="INFO", format="json", file_path=log_file)

        with with_context(ExecutionContext(job_id="outer", component="pool")):
            get_logger("scheduler").info("job.submitted", job_id="inner")
        _flush_root_handlers()

        entry = json.loads(log_file.read_text().splitlines()[0])
        assert entry["job_id"] == "inner"
        assert entry["component"] == "scheduler"

    def test_console_writes_to_stderr(self, capsys):
        configure_logging(level="DEBUG", format="console", include_timestamps=False)

        get_logger("engine.pool").warning("pool.worker_failed", worker_index=3)
        _flush_root_handlers()

        captured = capsys.readouterr()
        assert "pool.worker_failed" in captured.err
        assert "worker_index" in captured.err
        assert captured.out == ""

    def test_settings_snapshot_updated(self, tmp_path: Path):
        log_file = tmp_path / "q.log"
        configure_logging(level="ERROR", format="both", file_path=log_file, backup_count=2)

        assert logging_settings() == LoggingSettings(
            level="ERROR",
            format="both",
            file_path=log_file,
            backup_count=2,
        )
