"""Single-worker scheduler for periodic background checks.

A background check is a pair of operations: a predicate that polls for an
occurrence and a response that runs when the predicate returns True. Checks
run on one dedicated worker thread with fixed-delay semantics: the next run
of a check is timed from the end of its previous run, so a slow check
throttles itself instead of piling up.

Before every run the worker asks whether its owner is still alive (by
default: whether the main thread is still running). Once the owner is gone
the worker notifies the owner-exit callback and then shuts the scheduler
down without running anything else.

Example usage:
    scheduler = BackgroundScheduler()
    scheduler.schedule_with_fixed_delay(poll_inbox, interval=5.0, initial_delay=1.0)
    ...
    scheduler.shutdown()
"""

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

from app_tester.core.exceptions import SchedulerShutdownError

logger = logging.getLogger(__name__)

WORKER_THREAD_NAME = "Event_Checker"


@runtime_checkable
class PeriodicCheck(Protocol):
    """A background event to poll for and respond to."""

    def check_for_occurrence(self) -> bool:
        """Return True if the event has occurred."""
        ...

    def respond_to_occurrence(self) -> None:
        """Handle an occurrence reported by ``check_for_occurrence``."""
        ...


@dataclass
class CallbackCheck:
    """Adapts a predicate and a response callable to ``PeriodicCheck``."""

    predicate: Callable[[], bool]
    response: Callable[[], None]

    def check_for_occurrence(self) -> bool:
        return bool(self.predicate())

    def respond_to_occurrence(self) -> None:
        self.response()


def run_check(check: PeriodicCheck) -> bool:
    """Poll a check once and respond if it fired.

    Returns:
        Whether the event occurred.
    """
    occurred = check.check_for_occurrence()
    if occurred:
        check.respond_to_occurrence()
    return occurred


def main_thread_alive() -> bool:
    """Default owner-liveness predicate."""
    return threading.main_thread().is_alive()


class SchedulerState(Enum):
    NEW = "new"
    RUNNING = "running"
    SHUT_DOWN = "shut_down"


@dataclass(order=True)
class _ScheduledTask:
    next_run: float
    sequence: int
    task: Callable[[], object] = field(compare=False)
    interval: float = field(compare=False)
    name: str = field(compare=False)


class BackgroundScheduler:
    """Runs periodic tasks on one lazily started worker thread."""

    def __init__(
        self,
        is_owner_alive: Callable[[], bool] = main_thread_alive,
        on_owner_exit: Callable[[], None] | None = None,
        thread_name: str = WORKER_THREAD_NAME,
        daemon: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the scheduler. No thread is started until work arrives.

        Args:
            is_owner_alive: Polled before every run; False retires the worker.
            on_owner_exit: Called on the worker once the owner is gone.
            thread_name: Name of the worker thread.
            daemon: Whether the worker is a daemon thread. A non-daemon worker
                keeps the interpreter alive until it notices the main thread
                has finished.
            clock: Monotonic time source in seconds.
        """
        self._is_owner_alive = is_owner_alive
        self._on_owner_exit = on_owner_exit
        self._thread_name = thread_name
        self._daemon = daemon
        self._clock = clock
        self._condition = threading.Condition()
        self._queue: list[_ScheduledTask] = []
        self._sequence = itertools.count()
        self._state = SchedulerState.NEW
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_shutdown(self) -> bool:
        return self._state is SchedulerState.SHUT_DOWN

    @property
    def thread(self) -> threading.Thread | None:
        """The worker thread, once started."""
        return self._thread

    @property
    def pending_count(self) -> int:
        """Number of tasks waiting for their next run."""
        with self._condition:
            return len(self._queue)

    def schedule_with_fixed_delay(
        self,
        task: Callable[[], object],
        interval: float,
        initial_delay: float,
        name: str | None = None,
    ) -> None:
        """Run ``task`` after ``initial_delay`` seconds, then ``interval``
        seconds after each run completes.

        Never blocks on running tasks. The first submission starts the worker.

        Raises:
            ValueError: If ``interval`` is not positive or ``initial_delay``
                is negative.
            SchedulerShutdownError: If the scheduler has been shut down.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if initial_delay < 0:
            raise ValueError(f"initial delay must not be negative, got {initial_delay}")

        with self._condition:
            if self._state is SchedulerState.SHUT_DOWN:
                raise SchedulerShutdownError("the scheduler is already shut down")
            entry = _ScheduledTask(
                next_run=self._clock() + initial_delay,
                sequence=next(self._sequence),
                task=task,
                interval=interval,
                name=name or getattr(task, "__name__", repr(task)),
            )
            heapq.heappush(self._queue, entry)
            if self._state is SchedulerState.NEW:
                self._start()
            self._condition.notify()

    def _start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name=self._thread_name,
            daemon=self._daemon,
        )
        self._state = SchedulerState.RUNNING
        self._thread.start()
        logger.debug(f"Background scheduler started on thread {self._thread_name}")

    def _next_due(self) -> _ScheduledTask | None:
        """Wait for the earliest task to come due. Caller holds the condition."""
        while self._state is not SchedulerState.SHUT_DOWN:
            if not self._queue:
                self._condition.wait()
                continue
            delay = self._queue[0].next_run - self._clock()
            if delay <= 0:
                return heapq.heappop(self._queue)
            self._condition.wait(timeout=delay)
        return None

    def _run(self) -> None:
        while True:
            with self._condition:
                entry = self._next_due()
            if entry is None:
                return

            if not self._is_owner_alive():
                logger.info("Owner thread has exited, shutting down background checks")
                if self._on_owner_exit is not None:
                    self._on_owner_exit()
                self.shutdown(wait=False)
                return

            try:
                entry.task()
            except Exception:
                logger.exception(f"Background task {entry.name!r} raised and will not run again")
                continue

            with self._condition:
                if self._state is SchedulerState.SHUT_DOWN:
                    return
                entry.next_run = self._clock() + entry.interval
                heapq.heappush(self._queue, entry)

    def shutdown(self, wait: bool = False, timeout: float | None = None) -> bool:
        """Cancel all pending work and stop the worker.

        Idempotent. A task already running is allowed to finish.

        Args:
            wait: Join the worker thread (ignored when called from the worker).
            timeout: Maximum seconds to wait for the join.

        Returns:
            True if this call performed the shutdown, False if it was
            already shut down.
        """
        with self._condition:
            if self._state is SchedulerState.SHUT_DOWN:
                performed = False
            else:
                performed = True
                self._state = SchedulerState.SHUT_DOWN
                self._queue.clear()
                self._condition.notify_all()

        if performed:
            logger.debug("Background scheduler shut down")
        if wait:
            self.join(timeout)
        return performed

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker thread to exit.

        Returns:
            True if there is no worker or it has exited.
        """
        thread = self._thread
        if thread is None:
            return True
        if thread is not threading.current_thread():
            thread.join(timeout)
        return not thread.is_alive()
