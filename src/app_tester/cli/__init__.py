"""CLI package for app-tester.

This package provides a Typer-based command-line interface for inspecting
the facility's configuration and log files.

Example usage:
    app-tester config
    app-tester logs
    app-tester show --tail 40
"""

from app_tester.cli.main import app

__all__ = ["app"]
