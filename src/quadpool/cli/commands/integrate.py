"""One-shot integration and registry listing commands."""

from __future__ import annotations

import json

import typer
from rich.markup import escape

from quadpool.core.errors import InvalidJobError, WorkerFailureError
from quadpool.core.job import IntegrationJob
from quadpool.core.kernel import trapezoid
from quadpool.core.partition import PartitionStrategy
from quadpool.engine.pool import WorkerPool

from ..output import console, create_integrands_table, create_result_table, format_result_line


def integrate(
    range_start: float = typer.Argument(..., help="Lower bound (use -- before negative values)"),
    range_end: float = typer.Argument(..., help="Upper bound"),
    num_steps: int = typer.Argument(..., help="Number of trapezoid slices"),
    integrand: str = typer.Argument(..., help="Integrand id (0-2) or name"),
    workers: int = typer.Option(32, "--workers", "-w", help="Worker threads"),
    strategy: PartitionStrategy = typer.Option(
        PartitionStrategy.CONTIGUOUS,
        "--strategy",
        "-s",
        help="Partition strategy",
    ),
    reference: bool = typer.Option(
        False,
        "--reference",
        "-r",
        help="Also compute the single-threaded reference and show the difference",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output result as JSON for machine parsing",
    ),
) -> None:
    """Integrate one function over a range with a worker pool."""
    try:
        job = IntegrationJob.create(range_start, range_end, num_steps, integrand)
        pool = WorkerPool(workers, strategy)
    except (InvalidJobError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    try:
        result = pool.run_detailed(job)
    except WorkerFailureError as e:
        console.print(f"[red]Integration failed:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    ref_value = (
        trapezoid(job.function, job.range_start, job.range_end, job.num_steps)
        if reference
        else None
    )

    if json_output:
        payload = {
            "integrand": job.integrand.value,
            "range_start": job.range_start,
            "range_end": job.range_end,
            "num_steps": job.num_steps,
            "worker_count": result.worker_count,
            "strategy": result.strategy.value,
            "total_area": result.total_area,
            "total_samples": result.total_samples,
            "duration_seconds": result.duration_seconds,
        }
        if ref_value is not None:
            payload["reference"] = ref_value
        typer.echo(json.dumps(payload, indent=2))
        return

    console.print(
        format_result_line(job, result.total_area),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )
    if reference:
        console.print(create_result_table(job, result, ref_value))


def integrands() -> None:
    """List the available integrands."""
    console.print(create_integrands_table())
