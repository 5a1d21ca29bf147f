"""Log folder and configuration commands: config, logs, show.

Provides commands for inspecting the resolved settings and the log files
written by the diagnostic facility.
"""

import datetime
from pathlib import Path

import typer
from rich.table import Table

from app_tester.cli.utils import (
    console,
    exit_with_error,
    find_log_file,
    format_size,
    list_log_files,
    print_info,
    print_success,
    print_warning,
)
from app_tester.config import find_config_file, get_settings, save_yaml_config
from app_tester.core.logging import get_logger
from app_tester.core.paths import resolve_in_working_directory

logger = get_logger(__name__)

app = typer.Typer(help="Log folder and configuration commands")


@app.command()
def config(
    write: bool = typer.Option(
        False, "--write", "-w", help="Write the resolved settings to a YAML config file."
    ),
    path: Path | None = typer.Option(
        None, "--path", "-p", help="Config file to write (default: app_tester.yaml)."
    ),
) -> None:
    """Show the resolved configuration.

    Settings are read from environment variables (APP_TESTER_*), a .env
    file, and app_tester.yaml, in that order of priority.

    Examples:
        app-tester config             # Show settings
        app-tester config --write     # Save them to app_tester.yaml
    """
    settings = get_settings()
    values = settings.to_yaml_dict()

    table = Table(title="app-tester settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in values.items():
        table.add_row(name, str(value))
    console.print(table)

    source = find_config_file()
    if source:
        print_info(f"Config file: {source}")
    else:
        print_info("No config file found, using defaults and environment.")

    if write:
        written = save_yaml_config(values, path)
        logger.info("Saved configuration", path=str(written))
        print_success(f"Configuration written to {written}")


@app.command()
def logs(
    log_dir: Path | None = typer.Option(
        None, "--log-dir", "-d", help="Log folder (overrides config)."
    ),
) -> None:
    """List the log files in the log folder.

    Examples:
        app-tester logs
        app-tester logs --log-dir /tmp/Log_Files
    """
    folder = resolve_in_working_directory(log_dir or get_settings().log_dir)
    files = list_log_files(folder)
    if not files:
        print_warning(f"No log files in {folder}")
        return

    table = Table(title=f"Log files in {folder}")
    table.add_column("File", style="cyan", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for path in files:
        stat = path.stat()
        modified = datetime.datetime.fromtimestamp(stat.st_mtime).isoformat(
            sep=" ", timespec="seconds"
        )
        table.add_row(path.name, format_size(stat.st_size), modified)
    console.print(table)
    print_info(f"{len(files)} log file(s)")


@app.command()
def show(
    name: str | None = typer.Argument(None, help="Log file name. Defaults to the latest."),
    tail: int | None = typer.Option(
        None, "--tail", "-n", min=1, help="Only show the last N lines."
    ),
    log_dir: Path | None = typer.Option(
        None, "--log-dir", "-d", help="Log folder (overrides config)."
    ),
) -> None:
    """Print a log file.

    Examples:
        app-tester show                              # Latest log file
        app-tester show 2024_08_06___16:00:22 -n 50  # Last 50 lines of one run
    """
    folder = resolve_in_working_directory(log_dir or get_settings().log_dir)
    path = find_log_file(folder, name)
    if path is None:
        exit_with_error(f"Log file {name or '(latest)'} not found in {folder}")

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        exit_with_error(f"Could not read {path}: {e}")

    lines = text.splitlines()
    if tail is not None:
        lines = lines[-tail:]

    print_info(f"{path}")
    console.print("\n".join(lines), markup=False, highlight=False)
