"""Integration tests for process-level termination and shutdown.

Each test runs a short script in a fresh interpreter, since a failed check
ends the whole process.
"""

import os
import subprocess
import sys
import textwrap
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parents[2] / "src"

TIMEOUT = 30


def run_script(script: str, cwd: Path) -> subprocess.CompletedProcess[str]:
    """Run a Python script with the package importable from source."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("APP_TESTER_")}
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-c", textwrap.dedent(script)],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        timeout=TIMEOUT,
    )


def read_single_log(log_dir: Path) -> str:
    files = list(log_dir.glob("*.txt"))
    assert len(files) == 1
    return files[0].read_text(encoding="utf-8")


class TestFatalExit:
    """A failed check ends the process from any thread."""

    def test_check_failure_on_worker_thread(self, temp_dir: Path) -> None:
        """Test that a failing check on a non-main thread exits with status 1."""
        result = run_script(
            """
            import threading
            import app_tester

            def worker():
                app_tester.check(False, "worker failed")

            t = threading.Thread(target=worker, name="Worker-1")
            t.start()
            t.join()
            print("unreachable")
            """,
            temp_dir,
        )

        assert result.returncode == 1
        assert 'Assertion failed in Thread: "Worker-1"' in result.stdout
        assert "worker failed" in result.stdout
        assert "unreachable" not in result.stdout

        log = read_single_log(temp_dir / "Log_Files")
        assert log.startswith("Starting log file")
        assert "worker failed" in log
        assert "worker @ " in log
        assert "The log file is being shut down." in log

    def test_kill_application_with_cause(self, temp_dir: Path) -> None:
        """Test that kill_application reports the cause and exits with status 1."""
        result = run_script(
            """
            import app_tester

            try:
                {}["missing"]
            except KeyError as e:
                app_tester.kill_application("Lookup failed", e)
            print("unreachable")
            """,
            temp_dir,
        )

        assert result.returncode == 1
        assert "Lookup failed\nKeyError: 'missing'" in result.stdout
        assert "unreachable" not in result.stdout


class TestOwnerExit:
    """Background checks end with the main thread."""

    def test_main_exit_closes_facility(self, temp_dir: Path) -> None:
        """Test that the process exits normally and the log file is closed."""
        result = run_script(
            """
            import app_tester

            app_tester.print("main started")
            app_tester.register_periodic_check(
                app_tester.CallbackCheck(lambda: False, lambda: None), 20
            )
            """,
            temp_dir,
        )

        assert result.returncode == 0
        assert "main started" in result.stdout

        log = read_single_log(temp_dir / "Log_Files")
        assert "main started" in log
        assert "The scheduler has been shut down" in log
        assert log.rstrip().endswith("The log file is being shut down.")

    def test_response_runs_before_exit(self, temp_dir: Path) -> None:
        """Test that a firing check responds on the Event_Checker thread."""
        result = run_script(
            """
            import threading
            import app_tester

            done = threading.Event()

            def respond():
                app_tester.print_important("event handled")
                done.set()

            app_tester.register_periodic_check(app_tester.CallbackCheck(lambda: True, respond), 10)
            done.wait(10)
            """,
            temp_dir,
        )

        assert result.returncode == 0
        assert 'Thread "Event_Checker"' in result.stdout
        assert "event handled" in result.stdout
