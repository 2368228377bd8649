"""quadpool - parallel trapezoid-rule integration with bounded job concurrency."""

__version__ = "0.1.0"

from quadpool.core import (  # noqa: E402
    INTEGRANDS,
    AtCapacityError,
    IntegrandKind,
    IntegrationJob,
    InvalidJobError,
    PartitionStrategy,
    QuadpoolError,
    WorkerFailureError,
    trapezoid,
)
from quadpool.engine import (  # noqa: E402
    EngineConfig,
    JobOutcome,
    JobResponse,
    JobScheduler,
    JobStatus,
    WorkerPool,
)

__all__ = [
    "INTEGRANDS",
    "AtCapacityError",
    "EngineConfig",
    "IntegrandKind",
    "IntegrationJob",
    "InvalidJobError",
    "JobOutcome",
    "JobResponse",
    "JobScheduler",
    "JobStatus",
    "PartitionStrategy",
    "QuadpoolError",
    "WorkerFailureError",
    "WorkerPool",
    "__version__",
    "trapezoid",
]
