"""Tests for quadpool.core.partition module."""

from __future__ import annotations

import math

import pytest

from quadpool.core.job import IntegrationJob
from quadpool.core.kernel import integrate, trapezoid
from quadpool.core.partition import (
    PartitionStrategy,
    contiguous_partition,
    partition,
    strided_partition,
)

STEP_COUNTS = [1, 5, 31, 32, 33, 1000, 1001]
WORKER_COUNTS = [1, 3, 8, 32]


def _job(num_steps: int, integrand: str = "identity-trig") -> IntegrationJob:
    return IntegrationJob.create(0.0, math.pi, num_steps, integrand)


class TestCoverage:
    """Both strategies cover every slice exactly once."""

    @pytest.mark.parametrize("strategy", list(PartitionStrategy))
    @pytest.mark.parametrize("num_steps", STEP_COUNTS)
    @pytest.mark.parametrize("worker_count", WORKER_COUNTS)
    def test_total_sample_count_equals_num_steps(self, strategy, num_steps, worker_count):
        subtasks = partition(_job(num_steps), worker_count, strategy)
        assert len(subtasks) == worker_count
        assert sum(s.sample_count for s in subtasks) == num_steps

    @pytest.mark.parametrize("num_steps", STEP_COUNTS)
    def test_strided_indices_are_disjoint_and_complete(self, num_steps):
        subtasks = strided_partition(_job(num_steps), 8)
        seen = [i for s in subtasks for i in s.indices]
        assert sorted(seen) == list(range(num_steps))

    def test_worker_indices(self):
        subtasks = partition(_job(100), 5, PartitionStrategy.STRIDED)
        assert [s.worker_index for s in subtasks] == [0, 1, 2, 3, 4]

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError, match="worker_count"):
            partition(_job(10), 0)


class TestContiguous:
    """Block layout details."""

    def test_remainder_goes_to_last_worker(self):
        subtasks = contiguous_partition(_job(1001), 32)
        assert [s.num_steps for s in subtasks[:-1]] == [31] * 31
        assert subtasks[-1].num_steps == 31 + 9

    def test_fewer_steps_than_workers(self):
        """Leading workers get empty sub-tasks; the last one takes every slice."""
        subtasks = contiguous_partition(_job(5), 8)
        assert [s.num_steps for s in subtasks] == [0] * 7 + [5]
        assert all(integrate(s) == 0.0 for s in subtasks[:-1])
        assert subtasks[-1].range_start == 0.0
        assert subtasks[-1].range_end == math.pi

    def test_sub_ranges_are_adjacent_and_pinned(self):
        job = _job(1001)
        subtasks = contiguous_partition(job, 32)
        assert subtasks[0].range_start == job.range_start
        assert subtasks[-1].range_end == job.range_end
        for left, right in zip(subtasks, subtasks[1:]):
            assert left.range_end == right.range_start

    def test_equal_width_when_evenly_divisible(self):
        subtasks = contiguous_partition(_job(64), 8)
        widths = [s.range_end - s.range_start for s in subtasks]
        assert widths == pytest.approx([math.pi / 8] * 8)

    def test_local_dx_matches_global(self):
        job = _job(1001)
        for subtask in contiguous_partition(job, 32):
            assert subtask.dx == pytest.approx(job.dx, rel=1e-12)


class TestStrided:
    """Interleaved layout details."""

    def test_every_worker_keeps_global_range(self):
        job = _job(1001)
        for k, subtask in enumerate(strided_partition(job, 32)):
            assert subtask.range_start == job.range_start
            assert subtask.range_end == job.range_end
            assert subtask.dx == job.dx
            assert subtask.offset == k
            assert subtask.stride == 32

    def test_uneven_division_without_special_case(self):
        subtasks = strided_partition(_job(10), 4)
        assert [s.sample_count for s in subtasks] == [3, 3, 2, 2]


class TestAgreement:
    """Partitioned sums agree with the single-threaded reference."""

    @pytest.mark.parametrize("strategy", list(PartitionStrategy))
    @pytest.mark.parametrize("num_steps", [1000, 1001, 7])
    @pytest.mark.parametrize("integrand", ["identity-trig", "gaussian-bell", "exponential-decay-ramp"])
    def test_matches_reference(self, strategy, num_steps, integrand):
        job = _job(num_steps, integrand)
        reference = trapezoid(job.function, job.range_start, job.range_end, num_steps)
        total = sum(integrate(s) for s in partition(job, 32, strategy))
        assert total == pytest.approx(reference, rel=1e-9)
