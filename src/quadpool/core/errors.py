"""Exception hierarchy for quadpool.

All quadpool exceptions inherit from QuadpoolError, so callers can catch
broadly (QuadpoolError) or narrowly (e.g., AtCapacityError).
"""

from __future__ import annotations


class QuadpoolError(Exception):
    """Base exception for all quadpool errors."""


class InvalidJobError(QuadpoolError):
    """Raised when a job request violates its invariants.

    Examples: range_end < range_start, num_steps == 0, or an integrand
    selector outside the registry. Such jobs are never scheduled.
    """


class AtCapacityError(QuadpoolError):
    """Raised when a rejected-at-capacity submission is turned into an error.

    Not fatal: the caller may retry once a slot frees up.
    """


class WorkerFailureError(QuadpoolError):
    """Raised when one or more pool workers terminated abnormally.

    Failed workers never touch the accumulator, so the partial total is
    discarded rather than reported.

    Attributes:
        failed_workers: Map of worker index -> "ExcType: message".
        worker_count: Number of workers the pool started.
    """

    def __init__(self, failed_workers: dict[int, str], worker_count: int) -> None:
        self.failed_workers = dict(failed_workers)
        self.worker_count = worker_count
        indices = ", ".join(str(i) for i in sorted(self.failed_workers))
        super().__init__(
            f"{len(self.failed_workers)} of {worker_count} workers failed "
            f"(workers: {indices})"
        )

    def __reduce__(self) -> tuple[type[WorkerFailureError], tuple[dict[int, str], int]]:
        # Crosses the process boundary from isolated job executors.
        return (type(self), (self.failed_workers, self.worker_count))


__all__ = [
    "AtCapacityError",
    "InvalidJobError",
    "QuadpoolError",
    "WorkerFailureError",
]
