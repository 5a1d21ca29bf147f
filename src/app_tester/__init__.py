"""app-tester: thread-safe diagnostic readouts, fatal assertions, and
background checks for a single process.

Example usage:
    import app_tester

    app_tester.configure(minimum_rank=app_tester.Rank.UNIMPORTANT)
    app_tester.print("visible on the console and in the log file")
    app_tester.check(2 + 2 == 4, "arithmetic is broken")
"""

from app_tester.api import (
    check,
    close,
    configure,
    kill_application,
    print,
    print_error,
    print_error_important,
    print_error_unimportant,
    print_exception,
    print_important,
    print_unimportant,
    register_periodic_check,
    set_stack_trace_row_limit,
)
from app_tester.core.facility import AppTester, configure_app_tester, get_app_tester
from app_tester.core.ranks import IMPORTANT, NORMAL, UNIMPORTANT, Condition, Rank, StreamTarget
from app_tester.core.readout import ReadoutConfig
from app_tester.core.scheduler import CallbackCheck, PeriodicCheck

__version__ = "0.1.0"

__all__ = [
    "AppTester",
    "CallbackCheck",
    "Condition",
    "IMPORTANT",
    "NORMAL",
    "PeriodicCheck",
    "Rank",
    "ReadoutConfig",
    "StreamTarget",
    "UNIMPORTANT",
    "check",
    "close",
    "configure",
    "configure_app_tester",
    "get_app_tester",
    "kill_application",
    "print",
    "print_error",
    "print_error_important",
    "print_error_unimportant",
    "print_exception",
    "print_important",
    "print_unimportant",
    "register_periodic_check",
    "set_stack_trace_row_limit",
]
