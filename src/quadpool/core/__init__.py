"""Core numerics: integrand registry, job model, kernel and partitioning."""

from quadpool.core.errors import (
    AtCapacityError,
    InvalidJobError,
    QuadpoolError,
    WorkerFailureError,
)
from quadpool.core.integrands import INTEGRANDS, Integrand, IntegrandKind, resolve_integrand
from quadpool.core.job import IntegrationJob
from quadpool.core.kernel import SubTask, integrate, trapezoid
from quadpool.core.partition import PartitionStrategy, partition

__all__ = [
    "INTEGRANDS",
    "AtCapacityError",
    "Integrand",
    "IntegrandKind",
    "IntegrationJob",
    "InvalidJobError",
    "PartitionStrategy",
    "QuadpoolError",
    "SubTask",
    "WorkerFailureError",
    "integrate",
    "partition",
    "resolve_integrand",
    "trapezoid",
]
