"""Entry point for running app-tester as a module.

This module serves as a thin wrapper around the Typer CLI application.

Usage:
    python -m app_tester config        # Show settings
    python -m app_tester logs          # List log files
    python -m app_tester show          # Print the latest log file
    python -m app_tester --help        # Show all commands
"""


def main() -> None:
    """Main entry point - delegates to Typer CLI app."""
    from app_tester.cli.main import app

    app()


if __name__ == "__main__":
    main()
