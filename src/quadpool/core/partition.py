"""Partition strategies: split one job into per-worker sub-tasks.

Both strategies yield exactly ``worker_count`` sub-tasks whose slices
together cover indices ``0 .. num_steps-1`` once each, so the merged result
uses the same sample points as the non-partitioned computation.
"""

from __future__ import annotations

from enum import Enum

from quadpool.core.job import IntegrationJob
from quadpool.core.kernel import SubTask


class PartitionStrategy(str, Enum):
    """How a job's slices are divided among pool workers."""

    CONTIGUOUS = "contiguous"  # disjoint sub-ranges, local dx
    STRIDED = "strided"  # full range, global dx, every Nth slice


def contiguous_partition(job: IntegrationJob, worker_count: int) -> list[SubTask]:
    """Give each worker a block of consecutive slices.

    Every worker gets ``num_steps // worker_count`` slices and the last one
    also takes the remainder. A worker's sub-range is the span of its slices
    on the job's grid, pinned to the exact job bounds at both ends. Workers
    with zero slices get an empty sub-range.
    """
    integrand = job.function
    dx = job.dx
    base, remainder = divmod(job.num_steps, worker_count)
    last = worker_count - 1

    subtasks: list[SubTask] = []
    for k in range(worker_count):
        first = k * base
        count = base + remainder if k == last else base
        sub_start = job.range_start if k == 0 else job.range_start + first * dx
        sub_end = job.range_end if k == last else job.range_start + (first + count) * dx
        subtasks.append(
            SubTask(
                integrand=integrand,
                range_start=sub_start,
                range_end=sub_end,
                num_steps=count,
                worker_index=k,
            )
        )
    return subtasks


def strided_partition(job: IntegrationJob, worker_count: int) -> list[SubTask]:
    """Interleave slices: worker ``k`` takes ``k, k+W, k+2W, ...``."""
    integrand = job.function
    return [
        SubTask(
            integrand=integrand,
            range_start=job.range_start,
            range_end=job.range_end,
            num_steps=job.num_steps,
            offset=k,
            stride=worker_count,
            worker_index=k,
        )
        for k in range(worker_count)
    ]


def partition(
    job: IntegrationJob,
    worker_count: int,
    strategy: PartitionStrategy = PartitionStrategy.CONTIGUOUS,
) -> list[SubTask]:
    """Split ``job`` into ``worker_count`` sub-tasks using ``strategy``.

    Raises:
        ValueError: If worker_count is less than 1.
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if PartitionStrategy(strategy) is PartitionStrategy.STRIDED:
        return strided_partition(job, worker_count)
    return contiguous_partition(job, worker_count)


__all__ = [
    "PartitionStrategy",
    "contiguous_partition",
    "partition",
    "strided_partition",
]
