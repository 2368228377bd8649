"""Rich output formatting for the quadpool CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from quadpool.core.integrands import INTEGRANDS

if TYPE_CHECKING:
    from quadpool.core.job import IntegrationJob
    from quadpool.engine.pool import PoolRunResult
    from quadpool.engine.types import JobOutcome

# Shared console instance; command modules print through it.
console = Console()


def format_result_line(job: IntegrationJob, total_area: float) -> str:
    """The classic one-line answer for a finished job."""
    return (
        f"The integral of function {job.integrand.function_id} in range "
        f"{job.range_start:g} to {job.range_end:g} is {total_area:.10g}"
    )


def print_outcome(job: IntegrationJob | None, outcome: JobOutcome) -> None:
    """Print one completion from the interactive loop."""
    if outcome.succeeded and job is not None and outcome.total_area is not None:
        console.print(
            format_result_line(job, outcome.total_area),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        return
    console.print(
        f"[red]Job {escape(outcome.job_id)} {outcome.status.value}:[/red] "
        f"{escape(outcome.error or 'no detail')}"
    )


def create_integrands_table() -> Table:
    """Table of the integrand registry."""
    table = Table(title="Integrands")
    table.add_column("Id", justify="right", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Definition")
    for kind, integrand in INTEGRANDS.items():
        table.add_row(str(kind.function_id), kind.value, integrand.description)
    return table


def create_result_table(
    job: IntegrationJob,
    result: PoolRunResult,
    reference: float | None = None,
) -> Table:
    """Summary table for a one-shot integration."""
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Integrand", job.integrand.value)
    table.add_row("Range", f"[{job.range_start:g}, {job.range_end:g}]")
    table.add_row("Steps", str(job.num_steps))
    table.add_row("Workers", f"{result.worker_count} ({result.strategy.value})")
    table.add_row("Total", f"[green]{result.total_area:.10g}[/green]")
    if reference is not None:
        table.add_row("Reference", f"{reference:.10g}")
        table.add_row("Difference", f"{abs(result.total_area - reference):.3e}")
    table.add_row("Duration", f"{result.duration_seconds * 1000:.1f} ms")
    return table


__all__ = [
    "console",
    "create_integrands_table",
    "create_result_table",
    "format_result_line",
    "print_outcome",
]
