"""Shared utilities for CLI commands.

Provides console output helpers and log folder lookups used across
CLI commands.
"""

import datetime
from pathlib import Path
from typing import NoReturn

from rich.console import Console

from app_tester.core.log_file import LOG_FILE_SUFFIX, LOG_FILE_TIME_FORMAT
from app_tester.core.paths import resolve_in_working_directory, try_find_path

# Shared console instance for consistent output
console = Console()


def list_log_files(log_dir: Path) -> list[Path]:
    """List log files in a log folder, oldest first.

    Files are ordered by the creation time encoded in their names; files
    whose names do not parse sort first, by name.

    Args:
        log_dir: Log folder, absolute or relative to the working directory.

    Returns:
        Paths of the log files.
    """
    folder = resolve_in_working_directory(log_dir)
    if not folder.is_dir():
        return []

    def sort_key(path: Path) -> tuple[datetime.datetime, str]:
        try:
            stamp = datetime.datetime.strptime(path.stem, LOG_FILE_TIME_FORMAT)
        except ValueError:
            stamp = datetime.datetime.min
        return stamp, path.name

    return sorted(
        (p for p in folder.iterdir() if p.is_file() and p.suffix == LOG_FILE_SUFFIX),
        key=sort_key,
    )


def find_log_file(log_dir: Path, name: str | None = None) -> Path | None:
    """Find a log file by name, or the most recent one.

    Args:
        log_dir: Log folder to search.
        name: File name, with or without the .txt suffix. None for the latest.

    Returns:
        Path to the log file, or None if not found.
    """
    if name is None:
        files = list_log_files(log_dir)
        return files[-1] if files else None
    if not name.endswith(LOG_FILE_SUFFIX):
        name += LOG_FILE_SUFFIX
    folder = resolve_in_working_directory(log_dir)
    if not folder.is_dir():
        return None
    return try_find_path(name, folder)


def format_size(num_bytes: int) -> str:
    """Human-readable file size."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]{message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]{message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message in blue."""
    console.print(f"[blue]{message}[/blue]")


def exit_with_error(message: str, code: int = 1) -> NoReturn:
    """Print an error message and exit with the given code.

    Args:
        message: Error message to display.
        code: Exit code (default 1).
    """
    print_error(message)
    raise SystemExit(code)
