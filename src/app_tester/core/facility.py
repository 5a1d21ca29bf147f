"""The diagnostic facility: thread-safe readouts, fatal assertions, and
background checks sharing one log file.

``AppTester`` bundles the readout router, the log file, the stack trace
formatting, and the background scheduler behind one object. Readouts carry
the calling thread's name and location; failed assertions print a stack
trace whose first rows go to the console and whose remainder only reaches
the log file, then shut everything down and terminate the whole process.

Usage:
    tester = AppTester()
    tester.print("Loaded 3 files")
    tester.check(len(files) == 3, "expected three files")
    tester.register_periodic_check(CallbackCheck(inbox_has_mail, read_mail), 500)
    tester.close()

For the process-wide instance see ``get_app_tester``.
"""

import atexit
import datetime
import logging
import os
import sys
import threading
from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import NoReturn, TextIO

from app_tester.config import Settings, get_settings
from app_tester.core.exceptions import SchedulerShutdownError
from app_tester.core.log_file import DEFAULT_LOG_DIR, LogFileManager
from app_tester.core.ranks import Condition, Rank, StreamTarget
from app_tester.core.readout import ReadoutConfig, ReadoutRouter
from app_tester.core.scheduler import (
    BackgroundScheduler,
    PeriodicCheck,
    main_thread_alive,
    run_check,
)
from app_tester.core.stack_trace import (
    DEFAULT_STACK_TRACE_ROWS,
    caller_location,
    capture_stack,
    describe_exception,
    exception_frames,
    split_stack_trace,
)

logger = logging.getLogger(__name__)

FATAL_EXIT_CODE = 1
EMPTY_ASSERTION = "Empty_Assertion"


def terminate_process(status: int) -> NoReturn:
    """Flush the standard streams and end the process immediately.

    Works from any thread; nothing can catch it.
    """
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (AttributeError, OSError, ValueError):
            pass
    os._exit(status)


def _rows(rows: list[str]) -> str:
    return "".join(row + "\n" for row in rows)


class AppTester:
    """Process-wide diagnostic facility."""

    def __init__(
        self,
        config: ReadoutConfig | None = None,
        log_dir: Path | str = DEFAULT_LOG_DIR,
        stack_trace_rows: int = DEFAULT_STACK_TRACE_ROWS,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        is_owner_alive: Callable[[], bool] = main_thread_alive,
        terminate: Callable[[int], NoReturn] = terminate_process,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        """Initialize the facility. The log file is created on first readout.

        Args:
            config: Initial readout policy.
            log_dir: Log folder, absolute or relative to the working directory.
            stack_trace_rows: Stack trace rows shown on the console.
            stdout: Out stream override, ``sys.stdout`` by default.
            stderr: Error stream override, ``sys.stderr`` by default.
            is_owner_alive: Liveness predicate polled by the background
                scheduler; once False the facility closes itself.
            terminate: Ends the process with a status code. Must not return.
            clock: Source of the log file creation time.
        """
        self._log_file = LogFileManager(log_dir, clock=clock)
        self._router = ReadoutRouter(
            self._log_file,
            config=config,
            stdout=stdout,
            stderr=stderr,
            on_invariant_violation=self._impossible,
        )
        self._terminate = terminate
        self._is_owner_alive = is_owner_alive
        self._stack_trace_rows = DEFAULT_STACK_TRACE_ROWS
        self._scheduler: BackgroundScheduler | None = None
        self._scheduler_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False
        self._terminated = False
        self._reporting_impossible = False

        self.set_stack_trace_row_limit(stack_trace_rows)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "AppTester":
        """Build a facility from ``Settings``; extra keyword arguments are
        passed to the constructor."""
        config = ReadoutConfig(
            minimum_rank=settings.rank,
            stream_target=settings.target,
            log_enabled=settings.log_enabled,
            console_enabled=settings.console_enabled,
        )
        return cls(
            config=config,
            log_dir=settings.log_dir,
            stack_trace_rows=settings.stack_trace_rows,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def config(self) -> ReadoutConfig:
        return self._router.config

    @property
    def log_file(self) -> LogFileManager:
        return self._log_file

    @property
    def router(self) -> ReadoutRouter:
        return self._router

    @property
    def scheduler(self) -> BackgroundScheduler | None:
        """The background scheduler, once the first check is registered."""
        return self._scheduler

    @property
    def stack_trace_rows(self) -> int:
        return self._stack_trace_rows

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminated(self) -> bool:
        return self._terminated

    def configure(
        self,
        minimum_rank: Rank | None = None,
        stream_target: StreamTarget | None = None,
        log_enabled: bool | None = None,
        console_enabled: bool | None = None,
        *,
        stacklevel: int = 1,
    ) -> ReadoutConfig:
        """Update the readout policy. Arguments left as None keep their value.

        Returns:
            The policy now in effect.
        """
        changes: dict[str, object] = {}
        if minimum_rank is not None:
            self.check(
                isinstance(minimum_rank, Rank),
                f"{minimum_rank!r} is not a Rank",
                stacklevel=stacklevel + 1,
            )
            changes["minimum_rank"] = minimum_rank
        if stream_target is not None:
            self.check(
                isinstance(stream_target, StreamTarget),
                f"{stream_target!r} is not a StreamTarget",
                stacklevel=stacklevel + 1,
            )
            changes["stream_target"] = stream_target
        if log_enabled is not None:
            changes["log_enabled"] = bool(log_enabled)
        if console_enabled is not None:
            changes["console_enabled"] = bool(console_enabled)
        return self._router.configure(**changes)

    def set_stack_trace_row_limit(self, rows: int, *, stacklevel: int = 1) -> None:
        """Set how many stack trace rows reach the console."""
        self.check(
            isinstance(rows, int) and rows >= 0,
            "You can't display a negative number of rows in a stack trace.",
            stacklevel=stacklevel + 1,
        )
        self._stack_trace_rows = rows

    # ------------------------------------------------------------------
    # Readouts
    # ------------------------------------------------------------------

    def route(self, message: str, condition: Condition, rank: Rank) -> bool:
        """Emit raw text with no thread or location header."""
        return self._router.route(message, condition, rank)

    def _print(self, message: str, condition: Condition, rank: Rank, stacklevel: int) -> None:
        location = caller_location(stacklevel + 1)
        thread_name = threading.current_thread().name
        self._router.route_line(
            f'\nThread "{thread_name}": {location}\n{message}',
            condition,
            rank,
        )

    def print(self, message: str, *, stacklevel: int = 1) -> None:
        """Print a non-error message at NORMAL rank."""
        self._print(message, Condition.NON_ERROR, Rank.NORMAL, stacklevel)

    def print_important(self, message: str, *, stacklevel: int = 1) -> None:
        """Print a non-error message at IMPORTANT rank."""
        self._print(message, Condition.NON_ERROR, Rank.IMPORTANT, stacklevel)

    def print_unimportant(self, message: str, *, stacklevel: int = 1) -> None:
        """Print a non-error message at UNIMPORTANT rank."""
        self._print(message, Condition.NON_ERROR, Rank.UNIMPORTANT, stacklevel)

    def print_error(self, message: str, *, stacklevel: int = 1) -> None:
        """Print an error message at NORMAL rank."""
        self._print(message, Condition.ERROR, Rank.NORMAL, stacklevel)

    def print_error_important(self, message: str, *, stacklevel: int = 1) -> None:
        """Print an error message at IMPORTANT rank."""
        self._print(message, Condition.ERROR, Rank.IMPORTANT, stacklevel)

    def print_error_unimportant(self, message: str, *, stacklevel: int = 1) -> None:
        """Print an error message at UNIMPORTANT rank."""
        self._print(message, Condition.ERROR, Rank.UNIMPORTANT, stacklevel)

    def print_stack_trace(self, message: str, snapshot: list[str], first_row: int = 0) -> None:
        """Print a message followed by a stack trace.

        The first ``stack_trace_rows`` rows from ``first_row`` are printed as
        IMPORTANT errors together with the message; remaining rows follow as
        UNIMPORTANT errors, so under the default policy they only reach the
        log file.
        """
        self.check(
            0 <= first_row <= len(snapshot),
            "The first row of the stack trace is outside of the bounds of the stack trace.",
            stacklevel=2,
        )
        head, tail = split_stack_trace(snapshot, first_row, self._stack_trace_rows)
        with self._router.lock:
            self._router.route(message + "\n" + _rows(head), Condition.ERROR, Rank.IMPORTANT)
            if tail:
                self._router.route(_rows(tail), Condition.ERROR, Rank.UNIMPORTANT)

    def print_exception(
        self,
        exc: BaseException,
        leading_message: str | None = None,
        *,
        stacklevel: int = 1,
    ) -> None:
        """Print an exception with its stack trace, then where it was reported."""
        header = "\n" + describe_exception(exc)
        if leading_message is not None:
            header = f"\n{leading_message}{header}"
        with self._router.lock:
            self.print_stack_trace(header, exception_frames(exc), 0)
            self._router.route_line(caller_location(stacklevel) + "\n", Condition.ERROR, Rank.IMPORTANT)

    # ------------------------------------------------------------------
    # Fatal path
    # ------------------------------------------------------------------

    def check(self, assertion: object, message: str = EMPTY_ASSERTION, *, stacklevel: int = 1) -> None:
        """Terminate the process with a stack trace unless ``assertion`` holds.

        Args:
            assertion: Condition that must be true.
            message: Explanation printed when it is not.
            stacklevel: 1 points the trace at the caller; wrappers pass 2 to
                point at their own caller.
        """
        if not assertion:
            self._fail(message, stacklevel + 1)

    def kill_application(
        self,
        message: str = "",
        cause: BaseException | None = None,
        *,
        stacklevel: int = 1,
    ) -> NoReturn:
        """Terminate the process.

        Without a cause this prints the current stack trace. With a cause the
        exception and all of its frames are printed instead.
        """
        if cause is None:
            self._fail(message, stacklevel + 1)
        text = f"\n{message}\n{describe_exception(cause)}\n{_rows(exception_frames(cause))}"
        self._router.route_line(text, Condition.ERROR, Rank.IMPORTANT)
        self._shutdown_and_terminate()

    def _fail(self, message: str, first_row: int) -> NoReturn:
        # Row 0 is this frame; first_row counts frames above it.
        snapshot = capture_stack()
        first_row = min(first_row, len(snapshot))
        thread_name = threading.current_thread().name
        header = f'\nAssertion failed in Thread: "{thread_name}"\n{message}'
        self.print_stack_trace(header, snapshot, first_row)
        self._shutdown_and_terminate()

    def _impossible(self, description: str) -> NoReturn:
        # Runs inside route(); a second entry means the policy cannot route
        # the report either, so bypass it.
        if not self._reporting_impossible:
            self._reporting_impossible = True
            self._fail(description, 2)
        self._router.route_unfiltered(f"\n{description}\n{_rows(capture_stack())}")
        self._router.configure(
            minimum_rank=Rank.NORMAL,
            stream_target=StreamTarget.CONSOLE_OUT_ONLY,
            log_enabled=bool(self._router.config.log_enabled),
            console_enabled=False,
        )
        self._shutdown_and_terminate()

    def _shutdown_and_terminate(self) -> NoReturn:
        self._terminated = True
        self.close()
        self._terminate(FATAL_EXIT_CODE)

    # ------------------------------------------------------------------
    # Background checks
    # ------------------------------------------------------------------

    def _new_scheduler(self) -> BackgroundScheduler:
        return BackgroundScheduler(
            is_owner_alive=self._is_owner_alive,
            on_owner_exit=self.close,
        )

    def register_periodic_check(
        self,
        check: PeriodicCheck,
        interval_ms: int,
        initial_delay_ms: int | None = None,
        *,
        stacklevel: int = 1,
    ) -> bool:
        """Poll for and respond to a background event at a fixed delay.

        Args:
            check: The event to poll for and respond to.
            interval_ms: Milliseconds between the end of one poll and the
                start of the next.
            initial_delay_ms: Milliseconds until the first poll. Defaults to
                ``interval_ms``.
            stacklevel: Frames above the caller to blame for misuse, as in
                ``check``.

        Returns:
            True if the check was scheduled, False if the scheduler has
            already been shut down.
        """
        self.check(check is not None, "Event cannot be None", stacklevel=stacklevel + 1)
        self.check(
            isinstance(check, PeriodicCheck),
            f"{check!r} does not provide check_for_occurrence and respond_to_occurrence",
            stacklevel=stacklevel + 1,
        )
        self.check(interval_ms > 0, "Interval must be positive", stacklevel=stacklevel + 1)
        if initial_delay_ms is None:
            initial_delay_ms = interval_ms
        self.check(initial_delay_ms > 0, "Delay must be positive", stacklevel=stacklevel + 1)

        with self._scheduler_lock:
            if self._scheduler is None:
                self._scheduler = self._new_scheduler()
            scheduler = self._scheduler

        try:
            scheduler.schedule_with_fixed_delay(
                partial(run_check, check),
                interval=interval_ms / 1000.0,
                initial_delay=initial_delay_ms / 1000.0,
                name=type(check).__name__,
            )
        except SchedulerShutdownError as e:
            self.print_exception(
                e, "The background scheduler is already shut down", stacklevel=stacklevel + 1
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop background checks and close the log file.

        Idempotent and never raises. Readouts after closing still reach the
        console but no longer the log file.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        try:
            with self._scheduler_lock:
                if self._scheduler is None:
                    self._scheduler = self._new_scheduler()
                scheduler = self._scheduler
            if scheduler.shutdown() and scheduler.thread is not None:
                self._router.route_line(
                    "\nThe scheduler has been shut down",
                    Condition.NON_ERROR,
                    Rank.UNIMPORTANT,
                )
        except Exception as e:
            logger.debug(f"Ignoring error while stopping the scheduler: {e}")

        try:
            with self._router.lock:
                if self._log_file.is_open:
                    self._router.route_line(
                        "\nThe log file is being shut down.",
                        Condition.NON_ERROR,
                        Rank.NORMAL,
                    )
                self._log_file.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing the log file: {e}")


# Global facility instance
_app_tester: AppTester | None = None
_app_tester_lock = threading.Lock()


def get_app_tester() -> AppTester:
    """Get or create the process-wide facility from ``get_settings()``.

    The instance is closed automatically at interpreter exit.
    """
    global _app_tester
    with _app_tester_lock:
        if _app_tester is None:
            _app_tester = AppTester.from_settings(get_settings())
            atexit.register(_app_tester.close)
    return _app_tester


def configure_app_tester(settings: Settings | None = None, **kwargs) -> AppTester:
    """Replace the process-wide facility.

    Call this at application startup to apply non-default settings. Any
    previous instance is closed.

    Log file names have one-second resolution and an existing file is never
    reused. If the previous instance already created its log file within the
    same second, the new instance runs without a log file. Configure before
    the first readout to avoid this.

    Args:
        settings: Settings to build from. Defaults to ``get_settings()``.
        **kwargs: Extra ``AppTester`` constructor arguments.

    Returns:
        The new process-wide facility.
    """
    global _app_tester
    with _app_tester_lock:
        if _app_tester is not None:
            _app_tester.close()
            atexit.unregister(_app_tester.close)
        _app_tester = AppTester.from_settings(settings or get_settings(), **kwargs)
        atexit.register(_app_tester.close)
    return _app_tester
