"""Unit tests for the log file manager."""

import datetime
import os
import threading
import time
from pathlib import Path

from app_tester.core.log_file import (
    LOG_BANNER,
    LogFileManager,
    LogFileState,
    log_file_name,
    normalize_newlines,
)

FIXED_NAME = "2024_08_06___16:00:22.txt"


class TestLogFileName:
    """Tests for file naming and newline handling."""

    def test_log_file_name_format(self) -> None:
        """Test the timestamped file name."""
        moment = datetime.datetime(2014, 8, 6, 16, 0, 22)
        assert log_file_name(moment) == "2014_08_06___16:00:22.txt"

    def test_normalize_newlines(self) -> None:
        """Test that CRLF and CR become LF."""
        assert normalize_newlines("a\r\nb\rc\n") == "a\nb\nc\n"


class TestLogFileLifecycle:
    """Tests for lazy creation, writing, and closing."""

    def test_nothing_created_before_first_write(
        self, log_manager: LogFileManager, log_dir: Path
    ) -> None:
        """Test that construction does not touch the filesystem."""
        assert log_manager.state is LogFileState.UNINITIALIZED
        assert not log_dir.exists()

    def test_first_write_creates_folder_file_and_banner(
        self, log_manager: LogFileManager, log_dir: Path
    ) -> None:
        """Test lazy initialization on first write."""
        assert log_manager.try_write("hello\n") is True

        assert log_manager.state is LogFileState.READY
        assert log_manager.log_dir == log_dir
        assert log_manager.log_path == log_dir / FIXED_NAME
        content = log_manager.log_path.read_text(encoding="utf-8")
        assert content == f"{LOG_BANNER}\nhello\n"

    def test_native_line_endings(self, log_manager: LogFileManager) -> None:
        """Test that lines are written with the platform line ending."""
        log_manager.try_write("one\r\ntwo\n")
        raw = log_manager.log_path.read_bytes()
        assert raw == f"{LOG_BANNER}{os.linesep}one{os.linesep}two{os.linesep}".encode()

    def test_writes_are_flushed_immediately(self, log_manager: LogFileManager) -> None:
        """Test that content is on disk before close."""
        log_manager.try_write("durable\n")
        assert "durable" in log_manager.log_path.read_text(encoding="utf-8")

    def test_relative_folder_resolves_against_working_directory(self, temp_dir: Path) -> None:
        """Test that a relative log folder lands in the working directory."""
        manager = LogFileManager("Logs")
        try:
            assert manager.open() is True
            assert manager.log_dir == temp_dir.resolve() / "Logs"
        finally:
            manager.close()

    def test_existing_folder_is_reused(self, log_dir: Path) -> None:
        """Test that an existing folder is used as is."""
        log_dir.mkdir()
        (log_dir / "old.txt").write_text("previous run")
        manager = LogFileManager(log_dir)
        try:
            assert manager.open() is True
            assert (log_dir / "old.txt").read_text() == "previous run"
        finally:
            manager.close()

    def test_close_is_idempotent(self, log_manager: LogFileManager) -> None:
        """Test that close can be called repeatedly."""
        log_manager.try_write("x\n")
        log_manager.close()
        log_manager.close()
        assert not log_manager.is_open
        assert log_manager.state is LogFileState.READY

    def test_write_after_close_fails_quietly(self, log_manager: LogFileManager) -> None:
        """Test that writes to a closed file report failure."""
        log_manager.try_write("before\n")
        log_manager.close()

        assert log_manager.try_write("after\n") is False
        assert "after" not in log_manager.log_path.read_text(encoding="utf-8")

    def test_close_before_open_prevents_creation(
        self, log_manager: LogFileManager, log_dir: Path
    ) -> None:
        """Test that no file is created once the manager is closed."""
        log_manager.close()

        assert log_manager.state is LogFileState.UNAVAILABLE
        assert log_manager.try_write("late\n") is False
        assert not log_dir.exists()

    def test_concurrent_first_use_creates_one_file(self, log_dir: Path) -> None:
        """Test that racing first writes initialize exactly once."""
        manager = LogFileManager(log_dir)
        barrier = threading.Barrier(8)
        results: list[bool] = []

        def first_use() -> None:
            barrier.wait()
            results.append(manager.open())

        threads = [threading.Thread(target=first_use) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        manager.close()

        assert results == [True] * 8
        assert len(list(log_dir.iterdir())) == 1


class TestLogFileUnavailable:
    """Tests for degraded operation when the log file cannot be created."""

    def test_folder_creation_failure(self, blocked_log_dir: Path) -> None:
        """Test that an uncreatable folder disables logging without raising."""
        manager = LogFileManager(blocked_log_dir)

        assert manager.try_write("lost\n") is False
        assert manager.state is LogFileState.UNAVAILABLE
        assert manager.log_dir is None
        assert manager.log_path is None
        manager.close()

    def test_state_never_changes_after_failure(self, blocked_log_dir: Path) -> None:
        """Test that UNAVAILABLE is permanent even if the cause goes away."""
        manager = LogFileManager(blocked_log_dir)
        manager.open()

        blocked_log_dir.parent.unlink()
        assert manager.open() is False
        assert manager.state is LogFileState.UNAVAILABLE

    def test_name_collision(self, log_dir: Path) -> None:
        """Test that an existing file with the same timestamp is not reused."""
        log_dir.mkdir()
        (log_dir / FIXED_NAME).write_text("someone else's log")
        manager = LogFileManager(log_dir, clock=lambda: datetime.datetime(2024, 8, 6, 16, 0, 22))

        assert manager.try_write("x\n") is False
        assert manager.state is LogFileState.UNAVAILABLE
        assert (log_dir / FIXED_NAME).read_text() == "someone else's log"


class SlowFlushWriter:
    """Wraps a log file so that each flush takes a while."""

    def __init__(self, wrapped, started: threading.Event) -> None:
        self._wrapped = wrapped
        self._started = started

    def flush(self) -> None:
        self._started.set()
        time.sleep(0.05)
        self._wrapped.flush()

    def __getattr__(self, name: str):
        return getattr(self._wrapped, name)


class TestCloseWhileWriting:
    """Tests for closing the log file while another thread writes."""

    def test_write_racing_close_never_raises(self, log_manager: LogFileManager) -> None:
        """Test that a write interrupted by close reports a result instead of raising."""
        log_manager.try_write("first\n")
        flushing = threading.Event()
        log_manager._file = SlowFlushWriter(log_manager._file, flushing)
        results: list[bool] = []
        errors: list[BaseException] = []

        def writer() -> None:
            try:
                results.append(log_manager.try_write("second\n"))
            except BaseException as e:
                errors.append(e)

        thread = threading.Thread(target=writer)
        thread.start()
        assert flushing.wait(5)
        log_manager.close()
        thread.join(5)

        assert errors == []
        assert len(results) == 1
        assert isinstance(results[0], bool)
        assert not log_manager.is_open
        assert "second" in log_manager.log_path.read_text(encoding="utf-8")
