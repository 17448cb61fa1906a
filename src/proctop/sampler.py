"""System-wide CPU utilization from successive jiffy snapshots."""

from proctop.procfs import StatSource


class CpuSampler:
    """
    Turn cumulative CPU counters into an instantaneous utilization fraction.

    Each call to utilization() compares the current counters with the ones
    seen on the previous call. Before the first call the previous counters
    are zero, so the first reading is the average since boot; callers that
    want a true interval reading should discard it.
    """

    def __init__(self, source: StatSource) -> None:
        self._source = source
        self._previous_idle = 0
        self._previous_active = 0
        self._primed = False

    @property
    def primed(self) -> bool:
        """True once at least one sample has been taken."""
        return self._primed

    def utilization(self) -> float:
        """Return the busy share of CPU time since the previous call, 0.0 - 1.0."""
        jiffies = self._source.cpu_jiffies()
        idle = jiffies.idle_time
        active = jiffies.active_time

        delta_idle = idle - self._previous_idle
        delta_active = active - self._previous_active
        self._previous_idle = idle
        self._previous_active = active
        self._primed = True

        denominator = delta_idle + delta_active
        if denominator <= 0:
            return 0.0
        # Non-atomic reads or a counter reset can push this outside 0-1
        return min(1.0, max(0.0, delta_active / denominator))
