"""Tracking of processes across refresh cycles."""

from collections.abc import Iterable

import structlog

from proctop.formatting import DEFAULT_COMMAND_WIDTH, format_ram_mib, truncate_command
from proctop.models import ProcessRecord
from proctop.procfs import StatSource

log = structlog.get_logger()


def sort_by_memory(records: Iterable[ProcessRecord]) -> list[ProcessRecord]:
    """Order records by resident memory, largest first.

    The sort is stable, so equal values keep their incoming order.
    """
    return sorted(records, key=lambda r: r.ram_mib_value, reverse=True)


class ProcessRegistry:
    """
    Live set of tracked processes.

    Pids are added the first time they are observed. By default they are
    never removed, so a process that exits stays listed (with zeroed
    metrics) for the rest of the run. Set prune_exited to drop them on the
    next refresh instead.
    """

    def __init__(
        self,
        source: StatSource,
        prune_exited: bool = False,
        command_width: int = DEFAULT_COMMAND_WIDTH,
    ) -> None:
        """
        Initialize the ProcessRegistry.

        Args:
            source: Reader for process and system counters.
            prune_exited: Drop pids that are no longer present on refresh.
            command_width: Characters of the command line kept before "...".
        """
        self._source = source
        self._prune_exited = prune_exited
        self._command_width = command_width
        # dict keeps discovery order, used to break memory ties
        self._tracked: dict[int, None] = {}

    @property
    def prune_exited(self) -> bool:
        return self._prune_exited

    @prune_exited.setter
    def prune_exited(self, value: bool) -> None:
        self._prune_exited = value

    @property
    def pids(self) -> frozenset[int]:
        """Currently tracked pids."""
        return frozenset(self._tracked)

    def __len__(self) -> int:
        return len(self._tracked)

    def track(self, pids: Iterable[int]) -> None:
        """Start tracking any pid not seen before."""
        for pid in pids:
            if pid not in self._tracked:
                self._tracked[pid] = None

    def prune(self, current_pids: Iterable[int]) -> set[int]:
        """Stop tracking pids missing from current_pids and return them."""
        current = set(current_pids)
        removed = {pid for pid in self._tracked if pid not in current}
        for pid in removed:
            del self._tracked[pid]
        if removed:
            log.debug("registry_pruned", count=len(removed))
        return removed

    def refresh(self) -> list[ProcessRecord]:
        """Reconcile with the live pid set and return records ordered by memory."""
        current = self._source.process_ids()
        self.track(sorted(current))
        if self._prune_exited:
            self.prune(current)

        # Read once per refresh so every record shares the same clock
        uptime = self._source.uptime()
        system_jiffies = uptime * self._source.clock_ticks

        records = [self._derive(pid, uptime, system_jiffies) for pid in self._tracked]
        return sort_by_memory(records)

    def _derive(self, pid: int, uptime: int, system_jiffies: int) -> ProcessRecord:
        """Build the record for one pid; unreadable fields fall back to defaults."""
        source = self._source
        # One read of each per-pid file per refresh
        fields = source.stat_fields(pid)
        status = source.status_text(pid)
        cpu_fraction = 0.0
        if system_jiffies > 0:
            cpu_fraction = max(0.0, source.active_jiffies(pid, fields) / system_jiffies)

        return ProcessRecord(
            pid=pid,
            user=source.user(pid, status),
            command=truncate_command(source.command(pid), self._command_width),
            ram_mib=format_ram_mib(source.memory_kb(pid, status)),
            cpu_fraction=cpu_fraction,
            uptime_seconds=source.process_uptime(pid, system_uptime=uptime, fields=fields),
        )
