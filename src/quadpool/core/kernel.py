"""Trapezoid-rule quadrature kernel.

``integrate()`` is pure: it reads only its SubTask and the integrand, so any
number of pool workers may call it concurrently without coordination.
"""

from __future__ import annotations

from dataclasses import dataclass

from quadpool.core.integrands import Integrand


@dataclass(frozen=True)
class SubTask:
    """One worker's share of a job.

    The worker evaluates trapezoid slices ``i`` for ``i`` in
    ``range(offset, num_steps, stride)``, slice ``i`` spanning
    ``[range_start + i*dx, range_start + (i+1)*dx]``.

    Contiguous partitions use a local range with offset 0 and stride 1;
    strided partitions keep the job's full range and global dx and vary
    the offset.
    """

    integrand: Integrand
    range_start: float
    range_end: float
    num_steps: int
    offset: int = 0
    stride: int = 1
    worker_index: int = 0

    @property
    def dx(self) -> float:
        """Slice width; 0.0 for an empty sub-task."""
        if self.num_steps <= 0:
            return 0.0
        return (self.range_end - self.range_start) / self.num_steps

    @property
    def indices(self) -> range:
        return range(self.offset, self.num_steps, self.stride)

    @property
    def sample_count(self) -> int:
        """Number of trapezoid slices this sub-task evaluates."""
        return len(self.indices)


def integrate(subtask: SubTask) -> float:
    """Sum the trapezoid slices assigned to ``subtask``.

    Returns 0.0 for a sub-task with no slices.
    """
    if subtask.sample_count == 0:
        return 0.0

    f = subtask.integrand.evaluate
    start = subtask.range_start
    dx = subtask.dx

    area = 0.0
    for i in subtask.indices:
        small_x = start + i * dx
        big_x = start + (i + 1) * dx
        area += dx * (f(small_x) + f(big_x)) / 2
    return area


def trapezoid(
    integrand: Integrand,
    range_start: float,
    range_end: float,
    num_steps: int,
) -> float:
    """Single-threaded reference: the whole range as one sub-task."""
    return integrate(SubTask(integrand, range_start, range_end, num_steps))


__all__ = ["SubTask", "integrate", "trapezoid"]
