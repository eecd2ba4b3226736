"""Tests for the server process driver."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from lsprig.errors import ProcessLaunchError
from lsprig.harness.driver import ProcessDriver


class TestProcessDriver:
    """Tests for ProcessDriver."""

    async def test_launch_failure(self, tmp_path: Path) -> None:
        """A missing executable is reported as a launch error."""
        driver = ProcessDriver(
            [str(tmp_path / "missing-server")],
            cwd=tmp_path,
            log_path=tmp_path / "log",
            test_id="abc",
        )
        with pytest.raises(ProcessLaunchError, match="missing-server") as excinfo:
            await driver.start()
        assert excinfo.value.test_id == "abc"

    async def test_stderr_goes_to_log(self, tmp_path: Path) -> None:
        """Server stderr is appended to the log artifact."""
        log_path = tmp_path / "log"
        log_path.write_text("before\n")
        driver = ProcessDriver(
            [sys.executable, "-c", "import sys; sys.stderr.write('from server\\n')"],
            cwd=tmp_path,
            log_path=log_path,
        )
        await driver.start()
        assert await driver.wait(10) == 0
        await driver.terminate()

        assert log_path.read_text() == "before\nfrom server\n"

    async def test_terminate_stops_running_server(self, tmp_path: Path) -> None:
        """A server that would run forever is stopped."""
        driver = ProcessDriver(
            [sys.executable, "-c", "import time; time.sleep(60)"],
            cwd=tmp_path,
            log_path=tmp_path / "log",
        )
        await driver.start()
        assert driver.returncode is None

        await driver.terminate()
        assert driver.returncode is not None
        await driver.terminate()

    async def test_wait_without_process(self, tmp_path: Path) -> None:
        """Waiting before start returns immediately."""
        driver = ProcessDriver(["server"], cwd=tmp_path, log_path=tmp_path / "log")
        assert await driver.wait(0.1) is None
