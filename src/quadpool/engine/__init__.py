"""quadpool engine: bounded job scheduling and intra-job worker pools."""

from quadpool.engine.config import EngineConfig, load_config
from quadpool.engine.pool import Accumulator, PoolRunResult, WorkerPool, execute_job
from quadpool.engine.scheduler import InFlightCounter, JobMeta, JobScheduler, job_start_method
from quadpool.engine.types import EngineStatus, JobOutcome, JobResponse, JobStatus

__all__ = [
    "Accumulator",
    "EngineConfig",
    "EngineStatus",
    "InFlightCounter",
    "JobMeta",
    "JobOutcome",
    "JobResponse",
    "JobScheduler",
    "JobStatus",
    "PoolRunResult",
    "WorkerPool",
    "execute_job",
    "job_start_method",
    "load_config",
]
