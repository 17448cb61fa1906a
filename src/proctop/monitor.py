"""System monitoring engine for proctop."""

import threading
from collections import deque
from dataclasses import dataclass
from queue import Queue

import structlog

from proctop.config import Config
from proctop.formatting import DEFAULT_COMMAND_WIDTH
from proctop.models import ProcessRecord
from proctop.procfs import StatSource
from proctop.registry import ProcessRegistry
from proctop.sampler import CpuSampler

log = structlog.get_logger()


@dataclass(slots=True, frozen=True)
class SystemSnapshot:
    """Snapshot of overall system state."""

    operating_system: str
    kernel: str
    cpu_fraction: float
    cpu_history: list[float]
    memory_utilization: float
    total_processes: int
    running_processes: int
    uptime_seconds: int
    processes: list[ProcessRecord]


def source_from_config(config: Config) -> StatSource:
    """Build a StatSource from the [paths] and [monitor] sections."""
    return StatSource(
        proc_root=config.paths.proc_root,
        os_release_path=config.paths.os_release,
        passwd_path=config.paths.passwd,
        clock_ticks=config.monitor.clock_ticks or None,
    )


class SystemMonitor:
    """
    System monitor that refreshes process and system data from /proc.

    Runs in a separate daemon thread and pushes immutable snapshots to a
    thread-safe Queue. The thread owns the ProcessRegistry and CpuSampler,
    so no mutable state is shared with the consumer.
    """

    def __init__(
        self,
        update_queue: Queue[SystemSnapshot],
        poll_rate: float = 2.0,
        source: StatSource | None = None,
        prune_exited: bool = False,
        command_width: int = DEFAULT_COMMAND_WIDTH,
        history_size: int = 60,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            update_queue: Thread-safe queue to push updates to.
            poll_rate: How often to poll the system (in seconds). Default 2.0s.
            source: Reader for /proc. Defaults to the live system.
            prune_exited: Drop exited processes instead of keeping them listed.
            command_width: Characters of the command line shown before "...".
            history_size: Number of CPU readings kept for the sparkline.
        """
        self._queue = update_queue
        self._poll_rate = max(0.1, poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._source = source or StatSource()
        self._registry = ProcessRegistry(
            self._source,
            prune_exited=prune_exited,
            command_width=command_width,
        )
        self._sampler = CpuSampler(self._source)
        self._cpu_history: deque[float] = deque(maxlen=history_size)
        # Prime the sampler (the first reading is the average since boot)
        self._sampler.utilization()

    @classmethod
    def from_config(cls, update_queue: Queue[SystemSnapshot], config: Config) -> "SystemMonitor":
        """Create a monitor using the given configuration."""
        return cls(
            update_queue,
            poll_rate=config.monitor.poll_rate,
            source=source_from_config(config),
            prune_exited=config.monitor.prune_exited,
            command_width=config.monitor.command_width,
            history_size=config.monitor.history_size,
        )

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def source(self) -> StatSource:
        return self._source

    @property
    def registry(self) -> ProcessRegistry:
        return self._registry

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()
        log.info(
            "monitor_started",
            poll_rate=self._poll_rate,
            proc_root=str(self._source.proc_root),
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            log.info("monitor_stopped")

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                snapshot = self.collect_snapshot()
                self._queue.put(snapshot)
            except Exception:
                # Keep the loop running; the next tick starts from scratch
                log.exception("snapshot_failed")

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)

    def collect_snapshot(self) -> SystemSnapshot:
        """Collect a snapshot of the current system state."""
        source = self._source

        cpu_fraction = self._sampler.utilization()
        self._cpu_history.append(cpu_fraction)

        return SystemSnapshot(
            operating_system=source.operating_system(),
            kernel=source.kernel(),
            cpu_fraction=cpu_fraction,
            cpu_history=list(self._cpu_history),
            memory_utilization=source.memory_utilization(),
            total_processes=source.total_processes(),
            running_processes=source.running_processes(),
            uptime_seconds=source.uptime(),
            processes=self._collect_processes(),
        )

    def _collect_processes(self) -> list[ProcessRecord]:
        """Refresh the registry and return records ordered by memory."""
        return self._registry.refresh()

    def get_cpu_history(self) -> list[float]:
        """Get the CPU usage history for sparkline rendering."""
        return list(self._cpu_history)
