"""Configuration system for proctop."""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class MonitorConfig:
    """Refresh and derivation settings."""

    poll_rate: float = 2.0  # Seconds between refreshes
    prune_exited: bool = False  # Drop exited processes from the table
    command_width: int = 40  # Command characters shown before "..."
    clock_ticks: int = 0  # Jiffies per second, 0 = ask the kernel
    history_size: int = 60  # CPU samples kept for the sparkline


@dataclass
class PathsConfig:
    """Locations of the files the monitor reads."""

    proc_root: str = "/proc"
    os_release: str = "/etc/os-release"
    passwd: str = "/etc/passwd"


@dataclass
class LoggingConfig:
    """Log file settings."""

    level: str = "INFO"
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "proctop"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "proctop"

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.state_dir / "proctop.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("monitor", "paths", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() on a missing file are identical.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            monitor=_load_monitor_config(_section(data, "monitor")),
            paths=_load_paths_config(_section(data, "paths")),
            logging=_load_logging_config(_section(data, "logging")),
        )


def _section(data: Mapping, name: str) -> Mapping:
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ValueError(f"[{name}] must be a table, got {section!r}")
    return section

def _number(data: Mapping, key: str, default: float) -> float:
    """Return data[key] as a float, rejecting non-numeric TOML values."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    return float(value)


def _integer(data: Mapping, key: str, default: int) -> int:
    """Return data[key] as an int, rejecting non-integer TOML values."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return int(value)


def _boolean(data: Mapping, key: str, default: bool) -> bool:
    """Return data[key], which must be a TOML boolean."""
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


def _string(data: Mapping, key: str, default: str) -> str:
    """Return data[key], which must be a TOML string."""
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return str(value)


def _load_monitor_config(data: dict) -> MonitorConfig:
    """Load monitor config from TOML data, using dataclass defaults for missing fields."""
    defaults = MonitorConfig()

    poll_rate = _number(data, "poll_rate", defaults.poll_rate)
    command_width = _integer(data, "command_width", defaults.command_width)
    clock_ticks = _integer(data, "clock_ticks", defaults.clock_ticks)
    history_size = _integer(data, "history_size", defaults.history_size)

    if poll_rate <= 0:
        raise ValueError(f"poll_rate must be > 0, got {poll_rate}")
    if command_width < 1:
        raise ValueError(f"command_width must be >= 1, got {command_width}")
    if clock_ticks < 0:
        raise ValueError(f"clock_ticks must be >= 0, got {clock_ticks}")
    if history_size < 1:
        raise ValueError(f"history_size must be >= 1, got {history_size}")

    return MonitorConfig(
        poll_rate=poll_rate,
        prune_exited=_boolean(data, "prune_exited", defaults.prune_exited),
        command_width=command_width,
        clock_ticks=clock_ticks,
        history_size=history_size,
    )


def _load_paths_config(data: dict) -> PathsConfig:
    """Load paths config from TOML data."""
    defaults = PathsConfig()
    return PathsConfig(
        proc_root=_string(data, "proc_root", defaults.proc_root),
        os_release=_string(data, "os_release", defaults.os_release),
        passwd=_string(data, "passwd", defaults.passwd),
    )


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    defaults = LoggingConfig()

    level = _string(data, "level", defaults.level).upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level!r}. Must be one of {VALID_LOG_LEVELS}")

    return LoggingConfig(
        level=level,
        log_max_bytes=_integer(data, "log_max_bytes", defaults.log_max_bytes),
        log_backup_count=_integer(data, "log_backup_count", defaults.log_backup_count),
    )
