"""Readers for the kernel's textual process and system state.

StatSource turns the loosely structured files under /proc (plus
/etc/os-release and /etc/passwd) into typed values. Every accessor is total:
a missing file, a missing key, a malformed number or a process that exits
mid-read produce a zero or empty default instead of an exception. Failed
reads are logged at debug level.

All paths are injectable so the readers can run against a fixture tree.
"""

import os
from pathlib import Path

import structlog

from proctop.formatting import format_ram_mib
from proctop.models import CpuJiffies
from proctop.parsing import parse_float, parse_int, token_at
from proctop.users import DEFAULT_PASSWD_PATH, UserDirectory

log = structlog.get_logger()

DEFAULT_PROC_ROOT = Path("/proc")
DEFAULT_OS_RELEASE_PATH = Path("/etc/os-release")
FALLBACK_CLOCK_TICKS = 100

# Files relative to the proc root
STAT_FILE = "stat"
MEMINFO_FILE = "meminfo"
UPTIME_FILE = "uptime"
VERSION_FILE = "version"
PID_STAT_FILE = "stat"
PID_STATUS_FILE = "status"
PID_CMDLINE_FILE = "cmdline"

# Keys, matched verbatim against the first token of a line
OS_NAME_KEY = "PRETTY_NAME"
MEM_TOTAL_KEY = "MemTotal:"
MEM_FREE_KEY = "MemFree:"
CPU_KEY = "cpu"  # Aggregate line only, per-core lines are cpu0, cpu1, ...
TOTAL_PROCESSES_KEY = "processes"
RUNNING_PROCESSES_KEY = "procs_running"
RESIDENT_MEMORY_KEY = "VmRSS:"
UID_KEY = "Uid:"

# /proc/version: "Linux version <release> ..."
KERNEL_RELEASE_INDEX = 2

# /proc/<pid>/stat field numbers as documented in proc(5), 1-indexed.
# Field 2 is "(comm)" and may itself contain spaces and parentheses, so
# fields are counted from the token after the last ")".
STAT_FIRST_FIELD_AFTER_COMM = 3  # state
STAT_UTIME = 14  # user mode ticks
STAT_STIME = 15  # kernel mode ticks
STAT_CUTIME = 16  # waited-for children, user mode
STAT_CSTIME = 17  # waited-for children, kernel mode
STAT_STARTTIME = 22  # ticks after boot when the process started


def default_clock_ticks() -> int:
    """Return the kernel's clock ticks per second (USER_HZ)."""
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError, AttributeError):
        return FALLBACK_CLOCK_TICKS
    return ticks if ticks > 0 else FALLBACK_CLOCK_TICKS


def _read_text(path: Path) -> str | None:
    """Read a whole file, returning None when it cannot be read."""
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        log.debug("proc_read_failed", path=str(path), error=str(e))
        return None


def _value_in(text: str, key: str) -> str | None:
    """Return the token following key on the first line that starts with key."""
    for line in text.splitlines():
        tokens = line.split()
        if tokens and tokens[0] == key:
            return token_at(tokens, 1)
    return None


def _find_value(path: Path, key: str) -> str | None:
    text = _read_text(path)
    if text is None:
        return None
    return _value_in(text, key)


def _first_token(path: Path) -> str | None:
    text = _read_text(path)
    if text is None:
        return None
    return token_at(text.split(), 0)


def _stat_field(fields: list[str], number: int) -> str | None:
    return token_at(fields, number - STAT_FIRST_FIELD_AFTER_COMM)


def _start_ticks(fields: list[str]) -> int | None:
    token = _stat_field(fields, STAT_STARTTIME)
    return None if token is None else parse_int(token)


class StatSource:
    """Typed access to system-wide and per-process counters."""

    def __init__(
        self,
        proc_root: Path | str = DEFAULT_PROC_ROOT,
        os_release_path: Path | str = DEFAULT_OS_RELEASE_PATH,
        passwd_path: Path | str = DEFAULT_PASSWD_PATH,
        clock_ticks: int | None = None,
    ) -> None:
        """
        Initialize the StatSource.

        Args:
            proc_root: Root of the process information filesystem.
            os_release_path: Key/value file holding the distribution name.
            passwd_path: Colon-delimited account file for uid lookups.
            clock_ticks: Jiffies per second. Defaults to the kernel's value.
        """
        self._proc_root = Path(proc_root)
        self._os_release_path = Path(os_release_path)
        self._users = UserDirectory(passwd_path)
        if clock_ticks is None or clock_ticks <= 0:
            clock_ticks = default_clock_ticks()
        self._clock_ticks = clock_ticks

    @property
    def proc_root(self) -> Path:
        return self._proc_root

    @property
    def clock_ticks(self) -> int:
        """Jiffies per second used for tick to second conversions."""
        return self._clock_ticks

    @property
    def users(self) -> UserDirectory:
        return self._users

    def _pid_path(self, pid: int, name: str) -> Path:
        return self._proc_root / str(pid) / name

    # ------------------------------------------------------------------
    # System-wide values
    # ------------------------------------------------------------------

    def operating_system(self) -> str:
        """Return PRETTY_NAME from the os-release file, or ""."""
        text = _read_text(self._os_release_path)
        if text is None:
            return ""
        for line in text.splitlines():
            key, sep, value = line.strip().partition("=")
            if sep and key == OS_NAME_KEY:
                # Spaces inside values may be encoded as underscores
                return value.strip().strip('"').strip("'").replace("_", " ")
        return ""

    def kernel(self) -> str:
        """Return the kernel release, the third token of /proc/version."""
        text = _read_text(self._proc_root / VERSION_FILE)
        if text is None:
            return ""
        lines = text.splitlines()
        if not lines:
            return ""
        return token_at(lines[0].split(), KERNEL_RELEASE_INDEX) or ""

    def process_ids(self) -> set[int]:
        """Return the pids of all processes visible under the proc root."""
        pids: set[int] = set()
        try:
            with os.scandir(self._proc_root) as entries:
                for entry in entries:
                    name = entry.name
                    if name.isascii() and name.isdigit() and entry.is_dir():
                        pids.add(int(name))
        except OSError as e:
            log.debug("proc_read_failed", path=str(self._proc_root), error=str(e))
        return pids

    def memory_totals(self) -> tuple[float, float]:
        """Return (MemTotal, MemFree) in kB."""
        total: float | None = None
        free: float | None = None
        text = _read_text(self._proc_root / MEMINFO_FILE)
        if text is None:
            return 0.0, 0.0
        for line in text.splitlines():
            tokens = line.split()
            if not tokens:
                continue
            if tokens[0] == MEM_TOTAL_KEY:
                total = parse_float(token_at(tokens, 1))
            elif tokens[0] == MEM_FREE_KEY:
                free = parse_float(token_at(tokens, 1))
            if total is not None and free is not None:
                break
        return total or 0.0, free or 0.0

    def memory_utilization(self) -> float:
        """Return the used share of physical memory, between 0 and 1."""
        total, free = self.memory_totals()
        if total <= 0:
            return 0.0
        return min(1.0, max(0.0, (total - free) / total))

    def uptime(self) -> int:
        """Return seconds since boot."""
        return max(0, parse_int(_first_token(self._proc_root / UPTIME_FILE)))

    def cpu_jiffies(self) -> CpuJiffies:
        """Return the aggregate cumulative CPU counters."""
        text = _read_text(self._proc_root / STAT_FILE)
        if text is None:
            return CpuJiffies()
        for line in text.splitlines():
            tokens = line.split()
            if tokens and tokens[0] == CPU_KEY:
                return CpuJiffies.from_values([parse_int(token) for token in tokens[1:]])
        return CpuJiffies()

    def jiffies(self) -> int:
        """Return the number of jiffies since boot."""
        return self.uptime() * self._clock_ticks

    def total_processes(self) -> int:
        """Return the number of processes created since boot."""
        return parse_int(_find_value(self._proc_root / STAT_FILE, TOTAL_PROCESSES_KEY))

    def running_processes(self) -> int:
        """Return the number of processes currently runnable."""
        return parse_int(_find_value(self._proc_root / STAT_FILE, RUNNING_PROCESSES_KEY))

    # ------------------------------------------------------------------
    # Per-process values
    # ------------------------------------------------------------------

    def command(self, pid: int) -> str:
        """Return the full command line of pid, arguments joined by spaces."""
        text = _read_text(self._pid_path(pid, PID_CMDLINE_FILE))
        if not text:
            return ""
        return text.replace("\0", " ").strip()

    def status_text(self, pid: int) -> str:
        """Return the contents of /proc/<pid>/status, or ""."""
        return _read_text(self._pid_path(pid, PID_STATUS_FILE)) or ""

    def stat_fields(self, pid: int) -> list[str]:
        """Return the stat fields of pid starting at field 3, or []."""
        text = _read_text(self._pid_path(pid, PID_STAT_FILE))
        if not text:
            return []
        _, sep, rest = text.rpartition(")")
        if not sep:
            return []
        return rest.split()

    def memory_kb(self, pid: int, status: str | None = None) -> float:
        """Return the resident memory of pid in kB.

        A status text already read for pid may be passed to avoid a re-read,
        the same holds for uid() and user().
        """
        if status is None:
            status = self.status_text(pid)
        return parse_float(_value_in(status, RESIDENT_MEMORY_KEY))

    def ram(self, pid: int) -> str:
        """Return the resident memory of pid in MiB, two decimals."""
        return format_ram_mib(self.memory_kb(pid))

    def uid(self, pid: int, status: str | None = None) -> str:
        """Return the real user id of pid as a string."""
        if status is None:
            status = self.status_text(pid)
        return _value_in(status, UID_KEY) or ""

    def user(self, pid: int, status: str | None = None) -> str:
        """Return the user name owning pid."""
        return self._users.resolve_user(self.uid(pid, status))

    def active_jiffies(self, pid: int, fields: list[str] | None = None) -> int:
        """Return user + system ticks of pid, including waited-for children."""
        if fields is None:
            fields = self.stat_fields(pid)
        numbers = (STAT_UTIME, STAT_STIME, STAT_CUTIME, STAT_CSTIME)
        values = [_stat_field(fields, n) for n in numbers]
        if any(value is None for value in values):
            return 0
        return sum(parse_int(value) for value in values)

    def start_time(self, pid: int, fields: list[str] | None = None) -> int:
        """Return the start time of pid in clock ticks after boot."""
        if fields is None:
            fields = self.stat_fields(pid)
        return _start_ticks(fields) or 0

    def process_uptime(
        self,
        pid: int,
        system_uptime: int | None = None,
        fields: list[str] | None = None,
    ) -> int:
        """
        Return the age of pid in seconds.

        Args:
            pid: Process id.
            system_uptime: Seconds since boot, read from the proc root if omitted.
            fields: Stat fields of pid from stat_fields(), read if omitted.
        """
        if fields is None:
            fields = self.stat_fields(pid)
        start = _start_ticks(fields)
        if start is None:
            return 0
        if system_uptime is None:
            system_uptime = self.uptime()
        return max(0, system_uptime - start // self._clock_ticks)
