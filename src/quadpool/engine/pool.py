"""Intra-job worker pool.

A WorkerPool splits one job into ``worker_count`` sub-tasks, starts a fresh
thread per sub-task, and merges the partial areas into a job-local
Accumulator. ``run()`` returns only after every worker has been joined.

The merge order depends on which worker takes the accumulator lock first,
so repeated runs may differ in the last few ULPs.
"""

from __future__ import annotations

import threading
import time
from contextlib import nullcontext
from dataclasses import dataclass, field

from quadpool.core.errors import WorkerFailureError
from quadpool.core.job import IntegrationJob
from quadpool.core.kernel import SubTask, integrate
from quadpool.core.logging import (
    ExecutionContext,
    LoggingSettings,
    apply_logging_settings,
    get_current_context,
    get_logger,
    with_context,
)
from quadpool.core.partition import PartitionStrategy, partition

_logger = get_logger("engine.pool")


class Accumulator:
    """Running total shared by the workers of one job.

    ``add()`` holds the lock for a single float addition.
    """

    def __init__(self, initial: float = 0.0) -> None:
        self._total = initial
        self._lock = threading.Lock()

    def add(self, value: float) -> None:
        with self._lock:
            self._total += value

    @property
    def total(self) -> float:
        with self._lock:
            return self._total


@dataclass
class PoolRunResult:
    """Result of running one job through a WorkerPool.

    Attributes:
        total_area: Merged integral value.
        worker_count: Number of workers started.
        strategy: Partition strategy used.
        samples_per_worker: Trapezoid slices evaluated by each worker, by index.
        duration_seconds: Wall-clock time from partitioning to the last join.
    """

    total_area: float
    worker_count: int
    strategy: PartitionStrategy
    samples_per_worker: list[int] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total_samples(self) -> int:
        return sum(self.samples_per_worker)


class WorkerPool:
    """Runs one job across a fixed number of worker threads.

    The pool holds no per-job state between runs: every ``run()`` builds a
    new accumulator and a new set of threads, so one WorkerPool may serve
    several jobs concurrently.
    """

    def __init__(
        self,
        worker_count: int = 32,
        strategy: PartitionStrategy = PartitionStrategy.CONTIGUOUS,
    ) -> None:
        if worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {worker_count}")
        self._worker_count = worker_count
        self._strategy = PartitionStrategy(strategy)

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def strategy(self) -> PartitionStrategy:
        return self._strategy

    def run(self, job: IntegrationJob) -> float:
        """Integrate ``job`` and return the merged total.

        Raises:
            WorkerFailureError: If any worker raised.
        """
        return self.run_detailed(job).total_area

    def run_detailed(self, job: IntegrationJob) -> PoolRunResult:
        """Integrate ``job`` and return the total with per-worker detail.

        Raises:
            WorkerFailureError: If any worker raised. Workers that failed
                never added to the accumulator; the partial total is dropped.
        """
        started = time.monotonic()
        accumulator = Accumulator()
        subtasks = partition(job, self._worker_count, self._strategy)

        failures: dict[int, str] = {}
        failures_lock = threading.Lock()
        parent_ctx = get_current_context()

        def _work(subtask: SubTask) -> None:
            ctx = (
                with_context(parent_ctx.with_worker(subtask.worker_index))
                if parent_ctx is not None
                else nullcontext()
            )
            with ctx:
                try:
                    area = integrate(subtask)
                # threading drops BaseException silently; a dead worker must fail the job
                except BaseException as exc:
                    _logger.error(
                        "pool.worker_failed",
                        worker_index=subtask.worker_index,
                        error_type=type(exc).__name__,
                        error=str(exc),
                    )
                    with failures_lock:
                        failures[subtask.worker_index] = f"{type(exc).__name__}: {exc}"
                    return
                accumulator.add(area)
                _logger.debug(
                    "pool.worker_done",
                    worker_index=subtask.worker_index,
                    samples=subtask.sample_count,
                )

        threads = [
            threading.Thread(
                target=_work,
                args=(subtask,),
                name=f"quadpool-worker-{subtask.worker_index}",
                daemon=True,
            )
            for subtask in subtasks
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        if failures:
            raise WorkerFailureError(failures, self._worker_count)

        result = PoolRunResult(
            total_area=accumulator.total,
            worker_count=self._worker_count,
            strategy=self._strategy,
            samples_per_worker=[s.sample_count for s in subtasks],
            duration_seconds=time.monotonic() - started,
        )
        _logger.debug(
            "pool.run_complete",
            strategy=self._strategy.value,
            workers=self._worker_count,
            samples=result.total_samples,
            duration_seconds=round(result.duration_seconds, 4),
        )
        return result


def execute_job(
    job: IntegrationJob,
    worker_count: int,
    strategy: PartitionStrategy,
    job_id: str = "",
) -> PoolRunResult:
    """Run one job to completion inside its execution unit.

    Module-level so it can be pickled into a job process.
    """
    pool = WorkerPool(worker_count, strategy)
    with with_context(ExecutionContext(job_id=job_id, component="pool")):
        return pool.run_detailed(job)


def init_job_process(settings: LoggingSettings) -> None:
    """Executor initializer for job processes: inherit the parent's logging."""
    apply_logging_settings(settings)


__all__ = [
    "Accumulator",
    "PoolRunResult",
    "WorkerPool",
    "execute_job",
    "init_job_process",
]
