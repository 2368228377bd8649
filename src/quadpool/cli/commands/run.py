"""Interactive query loop: ``quadpool run``.

Reads one query per line from stdin (blank lines are skipped) and submits
each as a job. A new query is only read while a job slot is free; results
print as jobs finish, in completion order. The loop ends at end of input or
at the first invalid query, then waits for every running job.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Literal, TextIO

import typer
from rich.markup import escape

from quadpool.core.errors import InvalidJobError
from quadpool.core.logging import get_logger
from quadpool.core.partition import PartitionStrategy
from quadpool.engine.config import EngineConfig
from quadpool.engine.scheduler import JobScheduler
from quadpool.engine.types import JobOutcome

from ..helpers import QUERY_PROMPT, build_engine_config, parse_query
from ..output import console, print_outcome

_logger = get_logger("cli.run")


def run(
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML engine configuration file",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    capacity: int | None = typer.Option(
        None,
        "--capacity",
        "-C",
        help="Maximum concurrent jobs (overrides config)",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Worker threads per job (overrides config)",
    ),
    strategy: PartitionStrategy | None = typer.Option(
        None,
        "--strategy",
        "-s",
        help="Partition strategy (overrides config)",
    ),
    isolation: str | None = typer.Option(
        None,
        "--isolation",
        help="Job execution unit: process or thread (overrides config)",
    ),
) -> None:
    """Read integration queries from stdin and run them concurrently."""
    config = build_engine_config(
        console,
        config_file,
        job_capacity=capacity,
        worker_count=workers,
        partition_strategy=strategy,
        isolation=isolation,
    )
    asyncio.run(run_query_loop(config, sys.stdin))


async def run_query_loop(config: EngineConfig, stream: TextIO) -> int:
    """Submit queries read from ``stream`` until EOF or an invalid query.

    Returns:
        The number of jobs submitted.
    """
    scheduler: JobScheduler

    def _on_complete(outcome: JobOutcome) -> None:
        meta = scheduler.get_job(outcome.job_id)
        print_outcome(meta.job if meta is not None else None, outcome)

    scheduler = JobScheduler(config, on_complete=_on_complete)
    submitted = 0
    stop_reason: Literal["eof", "invalid"] = "eof"

    try:
        while True:
            await scheduler.wait_for_capacity()
            console.print(QUERY_PROMPT, markup=False, highlight=False, soft_wrap=True)
            line = await asyncio.to_thread(stream.readline)
            while line and not line.strip():
                line = await asyncio.to_thread(stream.readline)
            if not line:
                break
            try:
                job = parse_query(line)
            except InvalidJobError as e:
                console.print(f"[yellow]Stopping:[/yellow] {escape(str(e))}")
                stop_reason = "invalid"
                break
            response = scheduler.submit(job)
            if response.accepted:
                submitted += 1
            else:
                console.print(f"[yellow]Rejected:[/yellow] {escape(response.message or '')}")
        await scheduler.drain()
    finally:
        await scheduler.shutdown(graceful=True)

    _logger.info("cli.run_finished", submitted=submitted, stop_reason=stop_reason)
    return submitted
