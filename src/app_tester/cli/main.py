"""Main CLI application for app-tester.

Provides a command-line interface using Typer with Rich integration for
inspecting configuration and the log files written by the facility.

Usage:
    app-tester config [--write]      Show (and optionally save) settings
    app-tester logs                  List log files
    app-tester show [NAME]           Print a log file
    app-tester --help                Show help
"""

import typer
from rich.console import Console

from app_tester.cli import commands
from app_tester.config import get_settings
from app_tester.core.logging import configure_logging

# Create the main Typer app
app = typer.Typer(
    name="app-tester",
    help="app-tester CLI - Inspect diagnostic facility settings and log files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

app.command(name="config")(commands.config)
app.command(name="logs")(commands.logs)
app.command(name="show")(commands.show)


@app.callback(invoke_without_command=True)  # type: ignore[untyped-decorator]
def main(ctx: typer.Context) -> None:
    """app-tester CLI.

    Use 'app-tester COMMAND --help' for more information on a command.
    """
    settings = get_settings()
    configure_logging(
        log_format=settings.internal_log_format,
        log_level=settings.internal_log_level,
    )

    if ctx.invoked_subcommand is None:
        console.print()
        console.print("[bold blue]app-tester[/bold blue]")
        console.print()
        console.print("Use [green]app-tester --help[/green] to see available commands.")
        console.print()
        raise typer.Exit(0)


if __name__ == "__main__":
    app()
