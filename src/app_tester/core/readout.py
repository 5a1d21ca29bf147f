"""Synchronized readout routing to the log file and console streams.

Every readout passes through ``ReadoutRouter.route``. The router holds one
re-entrant lock for the whole operation, so concurrent callers never
interleave below message granularity, and the configuration is read once
per readout inside that lock.
"""

import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import NoReturn, TextIO

from app_tester.core.log_file import LogFileManager
from app_tester.core.ranks import Condition, Rank, StreamTarget


@dataclass(frozen=True)
class ReadoutConfig:
    """Global readout policy."""

    minimum_rank: Rank = Rank.NORMAL
    stream_target: StreamTarget = StreamTarget.CONSOLE_OUT_ONLY
    log_enabled: bool = True
    console_enabled: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.minimum_rank, Rank):
            raise TypeError(f"minimum_rank must be a Rank, got {self.minimum_rank!r}")
        if not isinstance(self.stream_target, StreamTarget):
            raise TypeError(f"stream_target must be a StreamTarget, got {self.stream_target!r}")
        for name in ("log_enabled", "console_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"{name} must be a bool, got {getattr(self, name)!r}")

    def allows(self, rank: Rank) -> bool:
        """Whether a readout of this rank reaches the console."""
        return rank.importance >= self.minimum_rank.importance


def _impossible(description: str) -> NoReturn:
    raise AssertionError(description)


class ReadoutRouter:
    """Single entry point for all console and log file output."""

    def __init__(
        self,
        log_file: LogFileManager,
        config: ReadoutConfig | None = None,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        on_invariant_violation: Callable[[str], NoReturn] = _impossible,
    ) -> None:
        """Initialize the router.

        Args:
            log_file: Manager of the log file written by every readout.
            config: Initial policy. Defaults to ``ReadoutConfig()``.
            stdout: Out stream. Defaults to ``sys.stdout`` at write time.
            stderr: Error stream. Defaults to ``sys.stderr`` at write time.
            on_invariant_violation: Called with a description when a readout
                reaches an impossible state. Must not return.
        """
        self._log_file = log_file
        self._config = config or ReadoutConfig()
        self._stdout = stdout
        self._stderr = stderr
        self._on_invariant_violation = on_invariant_violation
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """The serialization lock; hold it to emit several readouts as one."""
        return self._lock

    @property
    def config(self) -> ReadoutConfig:
        return self._config

    @property
    def log_file(self) -> LogFileManager:
        return self._log_file

    def configure(self, **changes: object) -> ReadoutConfig:
        """Replace fields of the current policy.

        Args:
            **changes: ``ReadoutConfig`` field names and new values.

        Returns:
            The new policy.
        """
        with self._lock:
            self._config = replace(self._config, **changes)
            return self._config

    def _out(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def _err(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    def _select_stream(self, config: ReadoutConfig, condition: Condition) -> TextIO:
        if config.stream_target is StreamTarget.CONSOLE_OUT_ONLY:
            return self._out()
        if config.stream_target is StreamTarget.CONSOLE_ERR_ONLY:
            return self._err()
        if config.stream_target is StreamTarget.EITHER_BY_CONDITION:
            if condition is Condition.ERROR:
                return self._err()
            if condition is Condition.NON_ERROR:
                return self._out()
            self._on_invariant_violation(f"Readout condition {condition!r} is logically impossible")
        self._on_invariant_violation(
            f"Stream target {config.stream_target!r} is logically impossible"
        )

    def route(self, message: str, condition: Condition, rank: Rank) -> bool:
        """Send a readout to the log file and, if allowed, the console.

        The log file receives the message regardless of rank. The console
        receives it only when console output is enabled and the rank meets
        the configured minimum.

        Args:
            message: Text to emit verbatim.
            condition: Error or non-error; picks the stream under
                ``EITHER_BY_CONDITION``.
            rank: Importance of the readout.

        Returns:
            True if the message was written to the log file.
        """
        with self._lock:
            config = self._config
            logged = False
            if config.log_enabled:
                logged = self._log_file.try_write(message)

            if not config.console_enabled or not config.allows(rank):
                return logged

            stream = self._select_stream(config, condition)
            try:
                stream.write(message)
                stream.flush()
            except (OSError, ValueError):
                # Console closed or detached; the readout still reached the log
                pass
            return logged

    def route_line(self, message: str, condition: Condition, rank: Rank) -> bool:
        """Same as ``route`` with a trailing newline."""
        return self.route(message + "\n", condition, rank)

    def route_unfiltered(self, message: str) -> None:
        """Write to the log file and the error stream, ignoring the policy.

        Used when the policy itself is unusable and ``route`` cannot be
        trusted to pick a stream.
        """
        with self._lock:
            self._log_file.try_write(message)
            try:
                self._err().write(message)
                self._err().flush()
            except (OSError, ValueError):
                pass
