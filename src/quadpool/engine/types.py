"""Shared data types for the quadpool engine.

Defines the submission response, the per-job completion outcome and the
status snapshot returned to callers of the scheduler. All models are
Pydantic v2 BaseModel so they serialize directly for ``--json`` output.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from quadpool.core.errors import AtCapacityError, InvalidJobError, QuadpoolError
from quadpool.core.partition import PartitionStrategy


class JobStatus(str, Enum):
    """Lifecycle states of an admitted job.

    Inherits from ``str`` so values serialize directly in JSON output.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING


RejectReason = Literal["at_capacity", "invalid_job", "shutting_down"]


class JobResponse(BaseModel):
    """Response to a job submission.

    Returned immediately; it never waits for the job to run. Completion is
    reported separately through the scheduler's completion channels.
    """

    job_id: str = Field(
        default="",
        description="Identifier of the admitted job; empty when rejected",
    )
    status: Literal["accepted", "rejected"] = Field(
        description="accepted (running) or rejected (never scheduled)",
    )
    reason: RejectReason | None = Field(
        default=None,
        description="Why the job was rejected",
    )
    message: str | None = Field(
        default=None,
        description="Human-readable detail about the submission result",
    )

    @property
    def accepted(self) -> bool:
        return self.status == "accepted"

    def raise_for_status(self) -> JobResponse:
        """Raise the matching error for a rejection, else return self.

        Raises:
            InvalidJobError: If the job failed validation.
            AtCapacityError: If the scheduler had no free slot.
            QuadpoolError: If the scheduler is shutting down.
        """
        if self.accepted:
            return self
        detail = self.message or "job rejected"
        if self.reason == "invalid_job":
            raise InvalidJobError(detail)
        if self.reason == "at_capacity":
            raise AtCapacityError(detail)
        raise QuadpoolError(detail)


class JobOutcome(BaseModel):
    """Completion notification for one admitted job.

    Exactly one outcome is produced per admitted job, carrying either the
    total area or the failure description.
    """

    job_id: str
    status: JobStatus = Field(description="completed, failed or cancelled")
    total_area: float | None = Field(
        default=None,
        description="Integral value; None unless status is completed",
    )
    error: str | None = Field(
        default=None,
        description="Failure description; None unless the job failed",
    )
    error_type: str | None = Field(
        default=None,
        description="Exception class name behind the failure",
    )
    duration_seconds: float = Field(
        default=0.0,
        description="Wall-clock time from admission to completion",
    )

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.COMPLETED


class EngineStatus(BaseModel):
    """Point-in-time snapshot of the scheduler."""

    in_flight: int = Field(description="Jobs currently holding a slot")
    peak_in_flight: int = Field(description="Highest in-flight count observed")
    job_capacity: int = Field(description="Configured maximum in-flight jobs")
    worker_count: int = Field(description="Workers started per job")
    partition_strategy: PartitionStrategy
    isolation: Literal["process", "thread"]
    completed_jobs: int = Field(description="Jobs that finished successfully")
    failed_jobs: int = Field(description="Jobs that failed or were cancelled")
    uptime_seconds: float = Field(description="Seconds since the scheduler was created")


__all__ = [
    "EngineStatus",
    "JobOutcome",
    "JobResponse",
    "JobStatus",
    "RejectReason",
]
