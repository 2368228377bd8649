"""Tests for quadpool.core.job module."""

from __future__ import annotations

import pickle

import pytest
from pydantic import ValidationError

from quadpool.core.errors import InvalidJobError
from quadpool.core.integrands import INTEGRANDS, IntegrandKind
from quadpool.core.job import IntegrationJob


class TestIntegrationJob:
    """Validation and derived values of IntegrationJob."""

    def test_create_valid_job(self):
        job = IntegrationJob.create(0.0, 2.0, 1000, 2)
        assert job.integrand is IntegrandKind.EXPONENTIAL_DECAY_RAMP
        assert job.function is INTEGRANDS[IntegrandKind.EXPONENTIAL_DECAY_RAMP]
        assert job.dx == pytest.approx(0.002)

    def test_zero_width_range_allowed(self):
        """range_end == range_start is a valid (empty) integral."""
        job = IntegrationJob.create(1.0, 1.0, 10, "identity-trig")
        assert job.dx == 0.0

    def test_reversed_range_rejected(self):
        with pytest.raises(InvalidJobError, match="range_end"):
            IntegrationJob.create(2.0, 1.0, 10, 0)

    def test_zero_steps_rejected(self):
        with pytest.raises(InvalidJobError, match="num_steps"):
            IntegrationJob.create(0.0, 1.0, 0, 0)

    def test_unknown_selector_rejected(self):
        with pytest.raises(InvalidJobError, match="integrand"):
            IntegrationJob.create(0.0, 1.0, 10, 3)

    def test_nan_bound_rejected(self):
        with pytest.raises(InvalidJobError):
            IntegrationJob.create(float("nan"), 1.0, 10, 0)

    def test_direct_construction_raises_validation_error(self):
        """The pydantic constructor keeps pydantic's error type."""
        with pytest.raises(ValidationError):
            IntegrationJob(range_start=0.0, range_end=1.0, num_steps=0, integrand=0)

    def test_job_is_immutable(self):
        job = IntegrationJob.create(0.0, 1.0, 10, 0)
        with pytest.raises(ValidationError):
            job.num_steps = 20  # type: ignore[misc]

    def test_job_pickles(self):
        """Jobs cross the process boundary to isolated job executors."""
        job = IntegrationJob.create(-5.0, 5.0, 100, "gaussian-bell")
        assert pickle.loads(pickle.dumps(job)) == job
