"""Bounded job scheduler.

Admits integration jobs while fewer than ``job_capacity`` are in flight,
runs each admitted job in its own execution unit (a single-worker process
or thread executor created for that job), and reclaims the slot when the
job finishes, whatever the outcome.

Slot accounting:
  - ``InFlightCounter`` is the only source of truth; it is changed under
    its own lock and never exceeds the capacity passed to ``try_acquire``.
  - A job id is in ``_slots`` exactly while it holds a slot.
    ``_release_slot`` removes it before decrementing, so the job task's
    ``finally`` and the task done-callback can both call it and only the
    first call decrements.
  - The slot is released before the job's outcome is published, so an
    observer of the outcome never sees the finished job still counted.
"""

from __future__ import annotations

import asyncio
import multiprocessing
import threading
import time
import traceback
import uuid
from collections.abc import Callable
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from concurrent.futures.thread import BrokenThreadPool
from dataclasses import dataclass, field
from typing import Any

from quadpool.core.errors import InvalidJobError, WorkerFailureError
from quadpool.core.integrands import IntegrandKind
from quadpool.core.job import IntegrationJob
from quadpool.core.logging import get_logger, logging_settings
from quadpool.engine.config import EngineConfig
from quadpool.engine.pool import execute_job, init_job_process
from quadpool.engine.types import EngineStatus, JobOutcome, JobResponse, JobStatus

_logger = get_logger("engine.scheduler")

CompletionCallback = Callable[[JobOutcome], Any]


def job_start_method(configured: str | None) -> str:
    """Start method for job processes.

    Without an explicit choice, never fork: the event loop process has live
    threads (the stdin reader among them) whose locks a forked child would
    inherit held.
    """
    if configured is not None:
        return configured
    if "forkserver" in multiprocessing.get_all_start_methods():
        return "forkserver"
    return "spawn"


class InFlightCounter:
    """Lock-protected count of jobs holding a slot."""

    def __init__(self) -> None:
        self._value = 0
        self._peak = 0
        self._lock = threading.Lock()

    def try_acquire(self, capacity: int) -> bool:
        """Take a slot if fewer than ``capacity`` are held."""
        with self._lock:
            if self._value >= capacity:
                return False
            self._value += 1
            self._peak = max(self._peak, self._value)
            return True

    def release(self) -> int:
        """Return a slot and the new count.

        Raises:
            RuntimeError: If no slot is held (a double release).
        """
        with self._lock:
            if self._value <= 0:
                raise RuntimeError("InFlightCounter released more often than acquired")
            self._value -= 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak


@dataclass
class JobMeta:
    """Metadata tracked per admitted job."""

    job_id: str
    job: IntegrationJob
    submitted_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    status: JobStatus = JobStatus.RUNNING
    total_area: float | None = None
    error_message: str | None = None
    error_traceback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        result: dict[str, Any] = {
            "job_id": self.job_id,
            "status": self.status,
            "integrand": self.job.integrand.value,
            "range_start": self.job.range_start,
            "range_end": self.job.range_end,
            "num_steps": self.job.num_steps,
            "submitted_at": self.submitted_at,
            "finished_at": self.finished_at,
        }
        if self.total_area is not None:
            result["total_area"] = self.total_area
        if self.error_message:
            result["error_message"] = self.error_message
        if self.error_traceback:
            result["error_traceback"] = self.error_traceback
        return result


class JobScheduler:
    """Capacity-bounded dispatcher of integration jobs.

    Must be used from a running asyncio event loop. ``submit()`` never
    blocks: it either admits the job and returns, or rejects it without
    side effects. Completion is reported per job through
    ``wait_for_job()``, in completion order through ``next_completion()``,
    and through the optional ``on_complete`` callback.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._on_complete = on_complete
        self._start_time = time.monotonic()

        self._counter = InFlightCounter()
        self._slots: set[str] = set()
        self._slot_freed = asyncio.Event()

        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._outcomes: dict[str, asyncio.Future[JobOutcome]] = {}
        # Bounded like the job history; unread outcomes are dropped oldest first
        self._completions: asyncio.Queue[JobOutcome] = asyncio.Queue(
            maxsize=self._config.max_job_history,
        )
        self._job_meta: dict[str, JobMeta] = {}

        self._completed_count = 0
        self._failed_count = 0
        self._shutting_down = False

    # ─── Submission ───────────────────────────────────────────────────

    def submit_job(
        self,
        range_start: float,
        range_end: float,
        num_steps: int,
        integrand: IntegrandKind | str | int,
    ) -> JobResponse:
        """Validate the arguments into a job and submit it.

        Invalid arguments produce a ``rejected`` response with reason
        ``invalid_job``; nothing is scheduled.
        """
        try:
            job = IntegrationJob.create(range_start, range_end, num_steps, integrand)
        except InvalidJobError as exc:
            _logger.info("scheduler.job_invalid", error=str(exc))
            return JobResponse(status="rejected", reason="invalid_job", message=str(exc))
        return self.submit(job)

    def submit(self, job: IntegrationJob) -> JobResponse:
        """Admit ``job`` if a slot is free, else reject it.

        Raises:
            RuntimeError: If called without a running event loop.
        """
        if self._shutting_down:
            return JobResponse(
                status="rejected",
                reason="shutting_down",
                message="Scheduler is shutting down",
            )

        loop = asyncio.get_running_loop()
        capacity = self._config.job_capacity
        if not self._counter.try_acquire(capacity):
            _logger.debug("scheduler.at_capacity", job_capacity=capacity)
            return JobResponse(
                status="rejected",
                reason="at_capacity",
                message=f"All {capacity} job slots are in use; retry later",
            )

        job_id = f"{job.integrand.value}-{uuid.uuid4().hex[:8]}"
        self._slots.add(job_id)
        self._job_meta[job_id] = JobMeta(job_id=job_id, job=job)
        self._outcomes[job_id] = loop.create_future()

        task = loop.create_task(self._run_job_task(job_id, job), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_task_done(job_id, t))

        _logger.info(
            "job.submitted",
            job_id=job_id,
            integrand=job.integrand.value,
            range_start=job.range_start,
            range_end=job.range_end,
            num_steps=job.num_steps,
            in_flight=self._counter.value,
        )
        return JobResponse(
            job_id=job_id,
            status="accepted",
            message=f"Job running ({self._counter.value}/{capacity} slots in use)",
        )

    # ─── Completion ───────────────────────────────────────────────────

    async def wait_for_job(self, job_id: str) -> JobOutcome:
        """Wait for one job's outcome.

        Raises:
            KeyError: If the job id is unknown or already pruned.
        """
        return await asyncio.shield(self._outcomes[job_id])

    async def next_completion(self) -> JobOutcome:
        """Wait for the next outcome, in completion order.

        At most ``max_job_history`` unread outcomes are buffered; older ones
        are discarded when the buffer is full.
        """
        return await self._completions.get()

    async def wait_for_capacity(self) -> None:
        """Wait until at least one slot is free."""
        while self._counter.value >= self._config.job_capacity:
            self._slot_freed.clear()
            await self._slot_freed.wait()

    async def drain(self) -> None:
        """Wait until every admitted job has finished."""
        while self._tasks:
            await asyncio.wait(list(self._tasks.values()))

    # ─── Shutdown ─────────────────────────────────────────────────────

    async def shutdown(self, graceful: bool = True) -> None:
        """Stop admitting jobs, then wait for or cancel the running ones."""
        self._shutting_down = True
        running = [t for t in self._tasks.values() if not t.done()]
        _logger.info("scheduler.shutting_down", graceful=graceful, running_jobs=len(running))

        if not graceful:
            for task in running:
                task.cancel(msg="non-graceful shutdown")
        if running:
            results = await asyncio.gather(*running, return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException) and not isinstance(
                    result, asyncio.CancelledError,
                ):
                    _logger.warning(
                        "scheduler.shutdown_task_exception",
                        error=str(result),
                        error_type=type(result).__name__,
                    )
        _logger.info("scheduler.shutdown_complete", in_flight=self._counter.value)

    # ─── Introspection ────────────────────────────────────────────────

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def current_in_flight(self) -> int:
        """Number of jobs currently holding a slot."""
        return self._counter.value

    def current_in_flight_count(self) -> int:
        return self._counter.value

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def get_job(self, job_id: str) -> JobMeta | None:
        return self._job_meta.get(job_id)

    def list_jobs(self) -> list[dict[str, Any]]:
        """All tracked jobs, oldest submission first."""
        return [
            m.to_dict()
            for m in sorted(self._job_meta.values(), key=lambda m: m.submitted_at)
        ]

    def status(self) -> EngineStatus:
        return EngineStatus(
            in_flight=self._counter.value,
            peak_in_flight=self._counter.peak,
            job_capacity=self._config.job_capacity,
            worker_count=self._config.worker_count,
            partition_strategy=self._config.partition_strategy,
            isolation=self._config.isolation,
            completed_jobs=self._completed_count,
            failed_jobs=self._failed_count,
            uptime_seconds=time.monotonic() - self._start_time,
        )

    # ─── Internal ─────────────────────────────────────────────────────

    def _make_executor(self, job_id: str) -> Executor:
        """Create the single-worker execution unit for one job."""
        if self._config.isolation == "process":
            return ProcessPoolExecutor(
                max_workers=1,
                mp_context=multiprocessing.get_context(
                    job_start_method(self._config.start_method),
                ),
                initializer=init_job_process,
                initargs=(logging_settings(),),
            )
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"quadpool-{job_id}")

    async def _run_job_task(self, job_id: str, job: IntegrationJob) -> None:
        """Task coroutine that runs a single job in its own executor."""
        loop = asyncio.get_running_loop()
        started = time.monotonic()
        executor: Executor | None = None
        outcome = JobOutcome(
            job_id=job_id,
            status=JobStatus.FAILED,
            error="Job ended without reporting a result",
        )
        error_traceback: str | None = None

        _logger.debug("job.started", job_id=job_id, isolation=self._config.isolation)
        try:
            executor = self._make_executor(job_id)
            result = await loop.run_in_executor(
                executor,
                execute_job,
                job,
                self._config.worker_count,
                self._config.partition_strategy,
                job_id,
            )
            outcome = JobOutcome(
                job_id=job_id,
                status=JobStatus.COMPLETED,
                total_area=result.total_area,
                duration_seconds=time.monotonic() - started,
            )
            _logger.info(
                "job.completed",
                job_id=job_id,
                total_area=result.total_area,
                samples=result.total_samples,
                duration_seconds=round(outcome.duration_seconds, 4),
            )

        except asyncio.CancelledError as cancel_exc:
            outcome = JobOutcome(
                job_id=job_id,
                status=JobStatus.CANCELLED,
                error=str(cancel_exc) or "cancelled",
                error_type="CancelledError",
                duration_seconds=time.monotonic() - started,
            )
            _logger.warning("job.cancelled", job_id=job_id, reason=outcome.error)
            raise

        except (WorkerFailureError, BrokenProcessPool, BrokenThreadPool, OSError) as exc:
            # Expected per-job failures: a worker raised, or the job process died
            outcome = self._failed_outcome(job_id, exc, started)
            error_traceback = traceback.format_exc()
            _logger.error(
                "job.failed",
                job_id=job_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )

        except Exception as exc:
            outcome = self._failed_outcome(job_id, exc, started)
            error_traceback = traceback.format_exc()
            _logger.exception("job.unexpected_error", job_id=job_id)

        finally:
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)
            self._finish(job_id, outcome, error_traceback)

    @staticmethod
    def _failed_outcome(job_id: str, exc: BaseException, started: float) -> JobOutcome:
        return JobOutcome(
            job_id=job_id,
            status=JobStatus.FAILED,
            error=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
            duration_seconds=time.monotonic() - started,
        )

    def _release_slot(self, job_id: str) -> bool:
        """Return the job's slot if it still holds one."""
        if job_id not in self._slots:
            return False
        self._slots.discard(job_id)
        in_flight = self._counter.release()
        self._slot_freed.set()
        _logger.debug("scheduler.slot_released", job_id=job_id, in_flight=in_flight)
        return True

    def _finish(
        self,
        job_id: str,
        outcome: JobOutcome,
        error_traceback: str | None = None,
    ) -> None:
        """Release the slot, record the outcome and notify listeners.

        Runs once per job; later calls for the same job are ignored.
        """
        if not self._release_slot(job_id):
            return

        if outcome.succeeded:
            self._completed_count += 1
        else:
            self._failed_count += 1

        meta = self._job_meta.get(job_id)
        if meta is not None:
            meta.status = outcome.status
            meta.finished_at = time.time()
            meta.total_area = outcome.total_area
            meta.error_message = outcome.error
            meta.error_traceback = error_traceback

        future = self._outcomes.get(job_id)
        if future is not None and not future.done():
            future.set_result(outcome)
        if self._completions.full():
            self._completions.get_nowait()
        self._completions.put_nowait(outcome)

        if self._on_complete is not None:
            try:
                self._on_complete(outcome)
            except Exception:
                _logger.exception("scheduler.on_complete_failed", job_id=job_id)

    def _on_task_done(self, job_id: str, task: asyncio.Task[None]) -> None:
        """Done-callback for job tasks (success, error, or cancel).

        Covers tasks cancelled before their coroutine started, which never
        reach the ``finally`` of ``_run_job_task``, and exceptions that
        escaped it. asyncio would otherwise only report those when the task
        is garbage collected.
        """
        self._tasks.pop(job_id, None)
        exc = None if task.cancelled() else task.exception()
        if exc is not None:
            _logger.error(
                "job.task_failed",
                job_id=job_id,
                error=str(exc),
                error_type=type(exc).__name__,
                still_holding_slot=job_id in self._slots,
            )

        if job_id in self._slots:
            status = JobStatus.CANCELLED if task.cancelled() else JobStatus.FAILED
            self._finish(
                job_id,
                JobOutcome(
                    job_id=job_id,
                    status=status,
                    error=str(exc) if exc is not None else status.value,
                    error_type=type(exc).__name__ if exc is not None else None,
                ),
            )

        self._prune_job_history()

    def _prune_job_history(self) -> None:
        """Evict the oldest finished jobs beyond ``max_job_history``."""
        finished = sorted(
            (
                (jid, m) for jid, m in self._job_meta.items()
                if m.status.is_terminal
            ),
            key=lambda x: x[1].submitted_at,
        )
        excess = len(finished) - self._config.max_job_history
        if excess > 0:
            pruned_ids = [jid for jid, _ in finished[:excess]]
            for jid in pruned_ids:
                self._job_meta.pop(jid, None)
                self._outcomes.pop(jid, None)
            _logger.debug(
                "scheduler.job_history_pruned",
                pruned_count=excess,
                oldest_pruned=pruned_ids[0],
            )


__all__ = ["InFlightCounter", "JobMeta", "JobScheduler", "job_start_method"]
