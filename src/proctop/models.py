"""Data models for proctop."""

from dataclasses import dataclass

from proctop.parsing import parse_float


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Derived metrics of one process for a single refresh."""

    pid: int
    user: str
    command: str  # Truncated for display
    ram_mib: str  # Resident memory, two decimals, e.g. "12.34"
    cpu_fraction: float  # >= 0.0, may exceed 1.0 with children counted
    uptime_seconds: int

    @property
    def ram_mib_value(self) -> float:
        """Numeric value of ram_mib."""
        return parse_float(self.ram_mib)


@dataclass(slots=True, frozen=True)
class CpuJiffies:
    """Cumulative jiffy counters of the aggregate cpu line in /proc/stat."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0
    guest: int = 0
    guest_nice: int = 0

    @classmethod
    def from_values(cls, values: list[int]) -> "CpuJiffies":
        """Build from counters in file order; missing trailing fields are zero."""
        return cls(*values[:10])

    def as_list(self) -> list[int]:
        return [
            self.user,
            self.nice,
            self.system,
            self.idle,
            self.iowait,
            self.irq,
            self.softirq,
            self.steal,
            self.guest,
            self.guest_nice,
        ]

    @property
    def idle_time(self) -> int:
        return self.idle + self.iowait

    @property
    def total(self) -> int:
        return sum(self.as_list())

    @property
    def active_time(self) -> int:
        return self.total - self.idle_time
