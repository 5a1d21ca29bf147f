"""Module-level functions that use the process-wide facility.

Usage:
    import app_tester

    app_tester.print("Starting up")
    app_tester.check(config_loaded, "configuration must be loaded first")
"""

from typing import NoReturn

from app_tester.core.facility import get_app_tester
from app_tester.core.ranks import Rank, StreamTarget
from app_tester.core.readout import ReadoutConfig
from app_tester.core.scheduler import PeriodicCheck


def configure(
    minimum_rank: Rank | None = None,
    stream_target: StreamTarget | None = None,
    log_enabled: bool | None = None,
    console_enabled: bool | None = None,
) -> ReadoutConfig:
    """Update the readout policy."""
    return get_app_tester().configure(
        minimum_rank, stream_target, log_enabled, console_enabled, stacklevel=2
    )


def print(message: str) -> None:
    """Print a non-error message at NORMAL rank."""
    get_app_tester().print(message, stacklevel=2)


def print_important(message: str) -> None:
    """Print a non-error message at IMPORTANT rank."""
    get_app_tester().print_important(message, stacklevel=2)


def print_unimportant(message: str) -> None:
    """Print a non-error message at UNIMPORTANT rank."""
    get_app_tester().print_unimportant(message, stacklevel=2)


def print_error(message: str) -> None:
    """Print an error message at NORMAL rank."""
    get_app_tester().print_error(message, stacklevel=2)


def print_error_important(message: str) -> None:
    """Print an error message at IMPORTANT rank."""
    get_app_tester().print_error_important(message, stacklevel=2)


def print_error_unimportant(message: str) -> None:
    """Print an error message at UNIMPORTANT rank."""
    get_app_tester().print_error_unimportant(message, stacklevel=2)


def print_exception(exc: BaseException, leading_message: str | None = None) -> None:
    """Print an exception with its stack trace."""
    get_app_tester().print_exception(exc, leading_message, stacklevel=2)


def check(assertion: object, message: str = "Empty_Assertion") -> None:
    """Terminate the process with a stack trace unless ``assertion`` holds."""
    get_app_tester().check(assertion, message, stacklevel=2)


def kill_application(message: str = "", cause: BaseException | None = None) -> NoReturn:
    """Terminate the process."""
    get_app_tester().kill_application(message, cause, stacklevel=2)


def register_periodic_check(
    check: PeriodicCheck,
    interval_ms: int,
    initial_delay_ms: int | None = None,
) -> bool:
    """Poll for and respond to a background event at a fixed delay."""
    return get_app_tester().register_periodic_check(
        check, interval_ms, initial_delay_ms, stacklevel=2
    )


def set_stack_trace_row_limit(rows: int) -> None:
    """Set how many stack trace rows reach the console."""
    get_app_tester().set_stack_trace_row_limit(rows, stacklevel=2)


def close() -> None:
    """Stop background checks and close the log file."""
    get_app_tester().close()
