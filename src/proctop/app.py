"""proctop - Main Textual application."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import DataTable, Footer, Sparkline, Static

from proctop.config import Config
from proctop.formatting import format_elapsed, format_percent
from proctop.models import ProcessRecord
from proctop.monitor import SystemMonitor, SystemSnapshot
from proctop.parsing import parse_float

BAR_WIDTH = 40


def usage_bar(fraction: float, color: str, width: int = BAR_WIDTH) -> str:
    """Render a 0-1 fraction as a Rich markup bar."""
    fraction = min(1.0, max(0.0, fraction))
    filled = int(fraction * width)
    return f"[{color}]{'|' * filled}[/{color}]" + "[dim]" + " " * (width - filled) + "[/dim]"


class HeaderStats(Static):
    """Header widget showing system-wide statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 8;
        padding: 0 1;
        background: $surface;
    }

    HeaderStats #cpu-sparkline {
        width: 1fr;
        height: 3;
        margin-left: 2;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._operating_system: str = ""
        self._kernel: str = ""
        self._cpu_fraction: float = 0.0
        self._cpu_history: list[float] = []
        self._memory_utilization: float = 0.0
        self._total_processes: int = 0
        self._running_processes: int = 0
        self._uptime_seconds: int = 0
        self._loaded: bool = False

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Vertical(Static(self._get_system_info(), id="system-info")),
            Sparkline([], summary_function=max, id="cpu-sparkline"),
        )

    def update_stats(self, snapshot: SystemSnapshot) -> None:
        """Update the statistics from a system snapshot."""
        self._operating_system = snapshot.operating_system
        self._kernel = snapshot.kernel
        self._cpu_fraction = snapshot.cpu_fraction
        self._cpu_history = snapshot.cpu_history
        self._memory_utilization = snapshot.memory_utilization
        self._total_processes = snapshot.total_processes
        self._running_processes = snapshot.running_processes
        self._uptime_seconds = snapshot.uptime_seconds
        self._loaded = True
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        try:
            self.query_one("#system-info", Static).update(self._get_system_info())
            self.query_one("#cpu-sparkline", Sparkline).data = self._cpu_history
        except Exception:
            pass  # Widget not mounted yet

    def _get_system_info(self) -> str:
        """Get system info display."""
        if not self._loaded:
            return "Loading system info..."
        cpu_bar = usage_bar(self._cpu_fraction, "green")
        mem_bar = usage_bar(self._memory_utilization, "cyan")
        return (
            f"OS: {self._operating_system}\n"
            f"Kernel: {self._kernel}\n"
            f"CPU: \\[{cpu_bar}] {format_percent(self._cpu_fraction)}%\n"
            f"Memory: \\[{mem_bar}] {format_percent(self._memory_utilization)}%\n"
            f"Total Processes: {self._total_processes}\n"
            f"Running Processes: {self._running_processes}\n"
            f"Up Time: {format_elapsed(self._uptime_seconds)}"
        )


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: set[int] = set()

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("USER", key="user", width=10)
        table.add_column("CPU[%]", key="cpu", width=8)
        table.add_column("RAM[MB]", key="ram", width=10)
        table.add_column("TIME+", key="time", width=10)
        table.add_column("COMMAND", key="command")

    def update_processes(self, processes: list[ProcessRecord]) -> None:
        """
        Update the process table with new data.

        Uses update_cell for existing rows to avoid re-rendering the whole
        table, then re-sorts by RAM so the table follows the registry order.
        """
        table = self.query_one("#process-table", DataTable)

        new_pids = {proc.pid for proc in processes}

        # Remove rows for processes that are no longer reported
        for pid in self._current_pids - new_pids:
            try:
                table.remove_row(str(pid))
            except Exception:
                pass  # Row may not exist

        for proc in processes:
            row_key = str(proc.pid)
            if proc.pid in self._current_pids:
                self._update_row(table, row_key, proc)
            else:
                self._add_row(table, row_key, proc)

        self._current_pids = new_pids
        if processes:
            table.sort("ram", key=parse_float, reverse=True)

    def _update_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Update an existing row using update_cell for performance."""
        try:
            table.update_cell(row_key, "user", proc.user[:10])
            table.update_cell(row_key, "cpu", format_percent(proc.cpu_fraction))
            table.update_cell(row_key, "ram", proc.ram_mib)
            table.update_cell(row_key, "time", format_elapsed(proc.uptime_seconds))
            table.update_cell(row_key, "command", proc.command)
        except Exception:
            pass  # Row may have been removed

    def _add_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Add a new row to the table."""
        try:
            table.add_row(
                str(proc.pid),
                proc.user[:10],
                format_percent(proc.cpu_fraction),
                proc.ram_mib,
                format_elapsed(proc.uptime_seconds),
                proc.command,
                key=row_key,
            )
        except Exception:
            pass  # Row may already exist


class ProctopApp(App):
    """Main proctop application."""

    TITLE = "proctop"
    SUB_TITLE = "Linux Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 8;
    }

    Horizontal {
        height: auto;
    }

    #system-info {
        width: auto;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the ProctopApp."""
        super().__init__()
        self._config = config or Config()
        self._update_queue: Queue[SystemSnapshot] = Queue()
        self._monitor = SystemMonitor.from_config(self._update_queue, self._config)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the system monitor when the app is mounted."""
        self._monitor.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Check the queue for system updates and refresh the UI."""
        # Drain the queue, only the most recent snapshot is shown
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self._update_ui(snapshot)

    def _update_ui(self, snapshot: SystemSnapshot) -> None:
        """Update the UI with the new system snapshot."""
        try:
            header = self.query_one("#header-stats", HeaderStats)
            header.update_stats(snapshot)
        except Exception:
            pass  # The display must keep running

        try:
            process_table = self.query_one(ProcessTable)
            process_table.update_processes(snapshot.processes)
        except Exception:
            pass  # The display must keep running

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def run_tui(config: Config | None = None) -> None:
    """Run the proctop application."""
    app = ProctopApp(config)
    app.run()
