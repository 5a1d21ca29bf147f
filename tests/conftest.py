"""Pytest fixtures for app-tester tests."""

import datetime
import io
import os
import sys
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from app_tester import config as config_module
from app_tester.core.facility import AppTester
from app_tester.core.log_file import LogFileManager
from app_tester.core.readout import ReadoutConfig

FIXED_TIME = datetime.datetime(2024, 8, 6, 16, 0, 22)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_environment(
    temp_dir: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Run every test in an empty working directory with fresh settings."""
    for name in list(os.environ):
        if name.startswith(config_module.ENV_PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.chdir(temp_dir)
    monkeypatch.setattr(config_module, "_settings_cache", None)
    yield


@pytest.fixture
def log_dir(temp_dir: Path) -> Path:
    """Log folder inside the temporary directory (not yet created)."""
    return temp_dir / "Log_Files"


@pytest.fixture
def blocked_log_dir(temp_dir: Path) -> Path:
    """A log folder path that cannot be created: its parent is a file."""
    blocker = temp_dir / "blocker"
    blocker.write_text("not a directory")
    return blocker / "Log_Files"


@pytest.fixture
def log_manager(log_dir: Path) -> Generator[LogFileManager, None, None]:
    """Log file manager with a fixed creation time."""
    manager = LogFileManager(log_dir, clock=lambda: FIXED_TIME)
    yield manager
    manager.close()


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def err() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_tester(
    log_dir: Path, out: io.StringIO, err: io.StringIO
) -> Generator[Callable[..., AppTester], None, None]:
    """Factory for facilities writing to in-memory streams.

    Fatal paths raise SystemExit instead of ending the test process.
    """
    created: list[AppTester] = []

    def factory(**kwargs) -> AppTester:
        kwargs.setdefault("config", ReadoutConfig())
        kwargs.setdefault("log_dir", log_dir)
        kwargs.setdefault("stdout", out)
        kwargs.setdefault("stderr", err)
        kwargs.setdefault("terminate", sys.exit)
        kwargs.setdefault("is_owner_alive", lambda: True)
        kwargs.setdefault("clock", lambda: FIXED_TIME)
        tester = AppTester(**kwargs)
        created.append(tester)
        return tester

    yield factory

    for tester in created:
        tester.close()
        if tester.scheduler is not None:
            tester.scheduler.join(timeout=5)
