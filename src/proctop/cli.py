"""CLI commands for proctop."""

from pathlib import Path

import click


def _load_config(ctx: click.Context):
    """Load the config file and apply command line overrides."""
    from proctop.config import Config

    options = ctx.obj or {}
    try:
        config = Config.load(options.get("config_path"))
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if options.get("poll_rate") is not None:
        if options["poll_rate"] <= 0:
            raise click.BadParameter("must be > 0", param_hint="--poll-rate")
        config.monitor.poll_rate = options["poll_rate"]
    if options.get("prune") is not None:
        config.monitor.prune_exited = options["prune"]
    if options.get("proc_root") is not None:
        config.paths.proc_root = str(options["proc_root"])
    return config


def _start_logging(ctx: click.Context):
    """Load the config and route log events to the state directory."""
    import structlog

    from proctop.logging import configure

    config = _load_config(ctx)
    configure(config)
    structlog.get_logger().info(
        "config_loaded",
        path=str((ctx.obj or {}).get("config_path") or config.config_path),
        poll_rate=config.monitor.poll_rate,
        prune_exited=config.monitor.prune_exited,
        proc_root=config.paths.proc_root,
    )
    return config


@click.group(invoke_without_command=True)
@click.version_option(package_name="proctop")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default ~/.config/proctop/config.toml)",
)
@click.option("--poll-rate", type=float, help="Seconds between refreshes")
@click.option("--prune/--no-prune", default=None, help="Drop exited processes from the table")
@click.option(
    "--proc-root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Read process information from this directory instead of /proc",
)
@click.pass_context
def main(ctx, config_path, poll_rate, prune, proc_root) -> None:
    """Minimal top-like process monitor for Linux."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        config_path=config_path,
        poll_rate=poll_rate,
        prune=prune,
        proc_root=proc_root,
    )
    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@main.command()
@click.pass_context
def tui(ctx) -> None:
    """Launch the interactive process table."""
    from proctop.app import run_tui

    config = _start_logging(ctx)
    run_tui(config)


@main.command()
@click.option(
    "--limit",
    "-n",
    default=20,
    type=click.IntRange(min=0),
    show_default=True,
    help="Number of processes to show",
)
@click.option(
    "--interval",
    default=0.5,
    show_default=True,
    help="Seconds between the two CPU samples",
)
@click.pass_context
def snapshot(ctx, limit: int, interval: float) -> None:
    """Print one refresh of the process table and exit."""
    import time
    from queue import Queue

    from rich.console import Console
    from rich.table import Table

    from proctop.formatting import format_elapsed, format_percent
    from proctop.monitor import SystemMonitor

    config = _start_logging(ctx)
    monitor = SystemMonitor.from_config(Queue(), config)
    time.sleep(max(0.0, interval))
    snap = monitor.collect_snapshot()

    console = Console(highlight=False)
    console.print(f"[bold]OS:[/] {snap.operating_system}")
    console.print(f"[bold]Kernel:[/] {snap.kernel}")
    console.print(f"[bold]CPU:[/] {format_percent(snap.cpu_fraction).strip()}%")
    console.print(f"[bold]Memory:[/] {format_percent(snap.memory_utilization).strip()}%")
    console.print(f"[bold]Total Processes:[/] {snap.total_processes}")
    console.print(f"[bold]Running Processes:[/] {snap.running_processes}")
    console.print(f"[bold]Up Time:[/] {format_elapsed(snap.uptime_seconds)}")

    table = Table(box=None, header_style="bold")
    table.add_column("PID", justify="right")
    table.add_column("USER")
    table.add_column("CPU[%]", justify="right")
    table.add_column("RAM[MB]", justify="right")
    table.add_column("TIME+", justify="right")
    table.add_column("COMMAND", overflow="ellipsis", no_wrap=True)
    for proc in snap.processes[:limit]:
        table.add_row(
            str(proc.pid),
            proc.user,
            format_percent(proc.cpu_fraction),
            proc.ram_mib,
            format_elapsed(proc.uptime_seconds),
            proc.command,
        )
    console.print(table)


@main.group()
def config() -> None:
    """Manage the configuration file."""
    pass


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def config_init(ctx, force: bool) -> None:
    """Write the default configuration file."""
    from proctop.config import Config

    cfg = Config()
    path = (ctx.obj or {}).get("config_path") or cfg.config_path
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    cfg.save(path)
    click.echo(f"Created config at {path}")


if __name__ == "__main__":
    main()
