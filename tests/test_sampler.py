"""Tests for the CpuSampler."""

import math

import pytest

from proctop.models import CpuJiffies
from proctop.sampler import CpuSampler


class ScriptedSource:
    """Stand-in StatSource returning a fixed sequence of CPU counters."""

    def __init__(self, *samples: CpuJiffies) -> None:
        self._samples = list(samples)

    def cpu_jiffies(self) -> CpuJiffies:
        return self._samples.pop(0)


def jiffies(idle: int, active: int) -> CpuJiffies:
    """Counters with the given idle (idle + iowait) and active totals."""
    return CpuJiffies(user=active, idle=idle)


def test_first_call_does_not_raise():
    sampler = CpuSampler(ScriptedSource(jiffies(idle=100, active=200)))
    assert not sampler.primed

    value = sampler.utilization()

    assert sampler.primed
    assert not math.isnan(value)
    assert 0.0 <= value <= 1.0


def test_first_call_on_all_zero_counters():
    sampler = CpuSampler(ScriptedSource(CpuJiffies()))
    assert sampler.utilization() == 0.0


def test_second_call_uses_deltas():
    sampler = CpuSampler(
        ScriptedSource(jiffies(idle=100, active=200), jiffies(idle=150, active=300))
    )
    sampler.utilization()

    assert sampler.utilization() == pytest.approx(100 / 150)


def test_idle_includes_iowait():
    first = CpuJiffies(user=100, idle=50, iowait=50)
    second = CpuJiffies(user=150, idle=75, iowait=75)
    sampler = CpuSampler(ScriptedSource(first, second))
    sampler.utilization()

    # active +50, idle +50
    assert sampler.utilization() == pytest.approx(0.5)


def test_no_progress_returns_zero():
    sample = jiffies(idle=100, active=200)
    sampler = CpuSampler(ScriptedSource(sample, sample))
    sampler.utilization()

    assert sampler.utilization() == 0.0


def test_counter_reset_is_clamped():
    sampler = CpuSampler(
        ScriptedSource(jiffies(idle=1000, active=1000), jiffies(idle=1100, active=900))
    )
    sampler.utilization()

    value = sampler.utilization()
    assert 0.0 <= value <= 1.0


def test_fully_busy_interval():
    sampler = CpuSampler(
        ScriptedSource(jiffies(idle=100, active=200), jiffies(idle=100, active=400))
    )
    sampler.utilization()

    assert sampler.utilization() == pytest.approx(1.0)


def test_reads_from_stat_file(fake_proc):
    fake_proc.write_stat(cpu=[200, 0, 0, 100, 0, 0, 0, 0, 0, 0])
    sampler = CpuSampler(fake_proc.source())
    sampler.utilization()

    fake_proc.write_stat(cpu=[300, 0, 0, 140, 10, 0, 0, 0, 0, 0])
    assert sampler.utilization() == pytest.approx(100 / 150)
