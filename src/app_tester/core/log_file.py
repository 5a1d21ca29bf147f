"""Crash-safe log file for the diagnostic facility.

The log file is created lazily, exactly once per facility:

1. The log folder is resolved relative to the working directory and created
   if absent.
2. A file named after the current time (``YYYY_MM_DD___HH:MM:SS.txt``) is
   created inside it and opened for appending as UTF-8 text.
3. A "Starting log file" banner is written.

Any failure along the way leaves the manager permanently UNAVAILABLE, and
every later write reports failure instead of raising. Every successful write
is flushed and synced to disk so it survives an abrupt process kill.

Usage:
    manager = LogFileManager("Log_Files")
    manager.try_write("hello\\n")   # creates the file on first use
    manager.close()
"""

import datetime
import logging
import os
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TextIO

from app_tester.core.exceptions import LogFileError
from app_tester.core.paths import ensure_directory, resolve_in_working_directory

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = "Log_Files"
LOG_FILE_TIME_FORMAT = "%Y_%m_%d___%H:%M:%S"
LOG_FILE_SUFFIX = ".txt"
LOG_BANNER = "Starting log file"


class LogFileState(Enum):
    """Lifecycle of the log file. READY and UNAVAILABLE are terminal."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    UNAVAILABLE = "unavailable"


def log_file_name(moment: datetime.datetime) -> str:
    """Build the log file name for a creation time."""
    return moment.strftime(LOG_FILE_TIME_FORMAT) + LOG_FILE_SUFFIX


def normalize_newlines(text: str) -> str:
    """Collapse CRLF and lone CR to LF.

    The file is opened in text mode, so LF is written as the platform's
    native line ending.
    """
    return text.replace("\r\n", "\n").replace("\r", "\n")


class LogFileManager:
    """Owns the log folder, the log file, and its writer."""

    def __init__(
        self,
        log_dir: Path | str = DEFAULT_LOG_DIR,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        """Initialize the manager without touching the filesystem.

        Args:
            log_dir: Log folder, absolute or relative to the working directory.
            clock: Source of the creation time used for the file name.
        """
        self._requested_dir = Path(log_dir)
        self._clock = clock
        self._init_lock = threading.Lock()
        self._state = LogFileState.UNINITIALIZED
        self._log_dir: Path | None = None
        self._log_path: Path | None = None
        self._file: TextIO | None = None

    @property
    def state(self) -> LogFileState:
        return self._state

    @property
    def log_dir(self) -> Path | None:
        """The log folder, or None if it could not be prepared."""
        return self._log_dir

    @property
    def log_path(self) -> Path | None:
        """The log file, or None if it was never successfully created."""
        return self._log_path

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self) -> bool:
        """Create the log file on first call.

        Safe to call from several threads; exactly one performs the setup.

        Returns:
            True if the log file is READY.
        """
        if self._state is LogFileState.UNINITIALIZED:
            with self._init_lock:
                if self._state is LogFileState.UNINITIALIZED:
                    try:
                        self._setup_log_file()
                        self._state = LogFileState.READY
                    except LogFileError as e:
                        logger.warning(f"Log file unavailable, file logging disabled: {e}")
                        self._release_writer()
                        self._log_path = None
                        self._state = LogFileState.UNAVAILABLE
        return self._state is LogFileState.READY

    def _setup_log_file(self) -> None:
        """Create log folder and file, then write the banner."""
        log_dir = resolve_in_working_directory(self._requested_dir)
        if not ensure_directory(log_dir):
            raise LogFileError(f"could not create log folder {log_dir}")
        self._log_dir = log_dir

        log_path = log_dir / log_file_name(self._clock())
        try:
            log_path.touch(exist_ok=False)
            self._file = open(log_path, "a", encoding="utf-8")
        except OSError as e:
            raise LogFileError(f"could not create log file {log_path}: {e}") from e
        self._log_path = log_path

        if not self._write(LOG_BANNER + "\n"):
            raise LogFileError(f"could not write to log file {log_path}")
        logger.debug(f"Log file created at {log_path}")

    @staticmethod
    def _flush(writer: TextIO) -> None:
        """Flush and sync to disk."""
        writer.flush()
        try:
            os.fsync(writer.fileno())
        except OSError:
            pass

    def _write(self, text: str) -> bool:
        writer = self._file
        if writer is None:
            return False
        try:
            writer.write(normalize_newlines(text))
            self._flush(writer)
        except (OSError, ValueError):
            # ValueError: I/O operation on closed file
            return False
        return True

    def try_write(self, text: str) -> bool:
        """Append text to the log file.

        Args:
            text: Text to append, written verbatim apart from line endings.

        Returns:
            True if the text was written and flushed, False otherwise.
        """
        if not self.open():
            return False
        return self._write(text)

    def _release_writer(self) -> None:
        # Writers racing this see None or a closed file, both reported as False
        writer, self._file = self._file, None
        if writer is None:
            return
        try:
            self._flush(writer)
        except (OSError, ValueError):
            pass
        try:
            writer.close()
        except (OSError, ValueError):
            pass

    def close(self) -> None:
        """Flush and release the writer.

        Idempotent. Closing before the file was ever created prevents it
        from being created later.
        """
        with self._init_lock:
            if self._state is LogFileState.UNINITIALIZED:
                self._state = LogFileState.UNAVAILABLE
            self._release_writer()
