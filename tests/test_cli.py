"""Tests for quadpool CLI commands."""

from __future__ import annotations

import asyncio
import json
import os
import sys
import threading
import time
from pathlib import Path

import pytest
from typer.testing import CliRunner

from quadpool import __version__
from quadpool.cli import app
from quadpool.cli.commands.run import run_query_loop
from quadpool.cli.helpers import get_log_config, parse_query
from quadpool.core.errors import InvalidJobError
from quadpool.core.integrands import IntegrandKind
from quadpool.engine.config import EngineConfig

runner = CliRunner()


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"quadpool v{__version__}" in result.stdout


class TestIntegrandsCommand:
    def test_lists_registry(self) -> None:
        result = runner.invoke(app, ["integrands"])
        assert result.exit_code == 0
        for kind in IntegrandKind:
            assert kind.value in result.stdout


class TestIntegrateCommand:
    """Tests for the one-shot integrate command."""

    def test_prints_result_line(self) -> None:
        result = runner.invoke(app, ["integrate", "0", "2", "1000", "2", "--workers", "1"])
        assert result.exit_code == 0
        assert "The integral of function 2 in range 0 to 2 is" in result.stdout

    def test_negative_bound_and_name_selector(self) -> None:
        result = runner.invoke(
            app,
            ["integrate", "--workers", "8", "--", "-5", "5", "10000", "gaussian-bell"],
        )
        assert result.exit_code == 0
        assert "The integral of function 1 in range -5 to 5 is 0.99999" in result.stdout

    def test_json_output(self) -> None:
        result = runner.invoke(
            app,
            ["integrate", "0", "3.141592653589793", "1000", "0",
             "--workers", "4", "--strategy", "strided", "--json", "--reference"],
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["integrand"] == "identity-trig"
        assert payload["worker_count"] == 4
        assert payload["strategy"] == "strided"
        assert payload["total_samples"] == 1000
        assert payload["total_area"] == pytest.approx(2.0, abs=1e-5)
        assert payload["total_area"] == pytest.approx(payload["reference"], rel=1e-9)

    def test_reference_table(self) -> None:
        result = runner.invoke(app, ["integrate", "0", "1", "100", "0", "-w", "2", "--reference"])
        assert result.exit_code == 0
        assert "Reference" in result.stdout
        assert "Difference" in result.stdout

    @pytest.mark.parametrize(
        "args",
        [
            ["2", "1", "10", "0"],
            ["0", "1", "0", "0"],
            ["0", "1", "10", "cosine"],
            ["0", "1", "10", "3"],
        ],
    )
    def test_invalid_job_exits_1(self, args: list[str]) -> None:
        result = runner.invoke(app, ["integrate", *args])
        assert result.exit_code == 1
        assert "Error:" in result.stdout

    def test_invalid_worker_count_exits_1(self) -> None:
        result = runner.invoke(app, ["integrate", "0", "1", "10", "0", "--workers", "0"])
        assert result.exit_code == 1
        assert "worker_count" in result.stdout


class TestRunCommand:
    """Tests for the interactive query loop."""

    def test_runs_queries_until_eof(self) -> None:
        queries = "0 3.141592653589793 1000 0\n0 2 1000 exponential-decay-ramp\n"
        result = runner.invoke(
            app,
            ["run", "--isolation", "thread", "--capacity", "2", "--workers", "4"],
            input=queries,
        )
        assert result.exit_code == 0
        assert "Query: [start] [end] [numSteps] [funcId]" in result.stdout
        assert "The integral of function 0 in range 0 to 3.14159 is 1.99999" in result.stdout
        assert "The integral of function 2 in range 0 to 2 is" in result.stdout

    def test_stops_at_invalid_query(self) -> None:
        queries = "0 1 100 0\nnot a query\n0 1 100 1\n"
        result = runner.invoke(
            app,
            ["run", "--isolation", "thread", "--capacity", "1", "--workers", "2"],
            input=queries,
        )
        assert result.exit_code == 0
        assert "Stopping:" in result.stdout
        assert "The integral of function 0 in range 0 to 1 is" in result.stdout
        assert "function 1" not in result.stdout

    def test_skips_blank_lines(self) -> None:
        queries = "0 1 100 0\n\n   \n0 1 100 1\n"
        result = runner.invoke(
            app,
            ["run", "--isolation", "thread", "--capacity", "2", "--workers", "2"],
            input=queries,
        )
        assert result.exit_code == 0
        assert "Stopping:" not in result.stdout
        assert "The integral of function 0 in range 0 to 1 is" in result.stdout
        assert "The integral of function 1 in range 0 to 1 is" in result.stdout

    def test_config_file(self, tmp_path: Path) -> None:
        config = tmp_path / "quadpool.yaml"
        config.write_text("job_capacity: 1\nworker_count: 2\nisolation: thread\n")

        result = runner.invoke(app, ["run", "-c", str(config)], input="-1 1 100 1\n")

        assert result.exit_code == 0
        assert "The integral of function 1 in range -1 to 1 is" in result.stdout

    def test_invalid_override_exits_1(self) -> None:
        result = runner.invoke(app, ["run", "--capacity", "0"], input="")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.stdout


class TestLoggingOptions:
    def test_log_file_receives_json(self, tmp_path: Path) -> None:
        log_file = tmp_path / "quadpool.log"
        result = runner.invoke(
            app,
            ["--log-level", "debug", "--log-file", str(log_file),
             "integrate", "0", "1", "10", "0", "--workers", "2"],
        )
        assert result.exit_code == 0

        config = get_log_config()
        assert config.level == "DEBUG"
        assert config.format == "both"

        events = [json.loads(line)["event"] for line in log_file.read_text().splitlines()]
        assert "pool.run_complete" in events

    def test_both_format_without_file_exits_1(self) -> None:
        result = runner.invoke(app, ["--log-format", "both", "integrands"])
        assert result.exit_code == 1
        assert "Logging configuration error" in result.stdout


class TestParseQuery:
    def test_parses_numeric_selector(self) -> None:
        job = parse_query("  -1.5 2.5 400 1 \n")
        assert job.range_start == -1.5
        assert job.range_end == 2.5
        assert job.num_steps == 400
        assert job.integrand is IntegrandKind.GAUSSIAN_BELL

    @pytest.mark.parametrize(
        "line",
        ["", "0 1 10", "0 1 10 0 extra", "a 1 10 0", "0 1 1.5 0", "0 1 -3 0"],
    )
    def test_rejects_malformed(self, line: str) -> None:
        with pytest.raises(InvalidJobError):
            parse_query(line)


@pytest.fixture
def piped_stdin(monkeypatch):
    """Replace sys.stdin with a real pipe fed line by line from a thread.

    Reading it blocks inside the buffered reader, as an interactive
    terminal or a slow producer does.
    """
    read_fd, write_fd = os.pipe()
    reader = open(read_fd, encoding="utf-8")
    writer = open(write_fd, "w", encoding="utf-8")
    monkeypatch.setattr(sys, "stdin", reader)

    def _feed(lines: list[str], pause: float) -> threading.Thread:
        def _write() -> None:
            for line in lines:
                time.sleep(pause)
                writer.write(line)
                writer.flush()
            writer.close()

        thread = threading.Thread(target=_write, daemon=True)
        thread.start()
        return thread

    yield reader, _feed
    if not writer.closed:
        writer.close()
    reader.close()


@pytest.mark.slow
@pytest.mark.asyncio
async def test_query_loop_with_default_process_isolation(piped_stdin, capsys) -> None:
    """Job processes start while the stdin reader thread is blocked mid-read."""
    stream, feed = piped_stdin
    feed(["0 3.141592653589793 1000 0\n", "0 2 1000 2\n"], pause=0.5)

    config = EngineConfig(job_capacity=3, worker_count=4)
    assert config.isolation == "process"
    assert config.start_method is None

    submitted = await asyncio.wait_for(run_query_loop(config, stream), timeout=60)

    assert submitted == 2
    out = capsys.readouterr().out
    assert "The integral of function 0 in range 0 to 3.14159 is 1.99999" in out
    assert "The integral of function 2 in range 0 to 2 is" in out
