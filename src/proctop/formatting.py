"""Formatting utilities shared by the TUI and the snapshot command."""

ELLIPSIS = "..."
DEFAULT_COMMAND_WIDTH = 40


def format_elapsed(seconds: int) -> str:
    """Format seconds as HH:MM:SS.

    Hours wrap at 24, matching the classic top TIME column. Negative input
    is treated as zero.

    Example:
        format_elapsed(3725) -> "01:02:05"
    """
    seconds = max(0, int(seconds))
    hours = (seconds // 3600) % 24
    minutes = (seconds // 60) % 60
    return f"{hours:02d}:{minutes:02d}:{seconds % 60:02d}"


def truncate_command(command: str, width: int = DEFAULT_COMMAND_WIDTH) -> str:
    """Cut a command line to width characters followed by an ellipsis."""
    if len(command) > width:
        return command[:width] + ELLIPSIS
    return command


def format_ram_mib(kilobytes: float) -> str:
    """Format a kB amount as MiB with two decimals."""
    return f"{kilobytes / 1024:.2f}"


def format_percent(fraction: float) -> str:
    """Format a 0-1 fraction as a percentage string."""
    return f"{fraction * 100:5.1f}"
