"""Launching and stopping the server-under-test."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import IO

from lsprig.errors import ProcessLaunchError
from lsprig.logging import get_logger

__all__ = ["ProcessDriver"]

_logger = get_logger("harness.driver")

_TERMINATE_GRACE = 2.0


class ProcessDriver:
    """
    Owns one server subprocess.

    Stdin/stdout carry the JSON-RPC channel; stderr is appended to the
    workspace log so server diagnostics survive the run.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        log_path: Path,
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        self.command = tuple(command)
        self.cwd = cwd
        self.log_path = log_path
        self.test_id = test_id
        self.workspace = workspace
        self.process: asyncio.subprocess.Process | None = None
        self._stderr: IO[bytes] | None = None

    @property
    def stdin(self) -> asyncio.StreamWriter:
        assert self.process is not None and self.process.stdin is not None
        return self.process.stdin

    @property
    def stdout(self) -> asyncio.StreamReader:
        assert self.process is not None and self.process.stdout is not None
        return self.process.stdout

    @property
    def returncode(self) -> int | None:
        return None if self.process is None else self.process.returncode

    async def start(self) -> None:
        """
        Spawn the server.

        Raises:
            ProcessLaunchError: If the executable cannot be started.
        """
        try:
            self._stderr = self.log_path.open("ab")
            self.process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=self._stderr,
                cwd=self.cwd,
            )
        except OSError as e:
            self._close_stderr()
            raise ProcessLaunchError(
                f"Failed to launch {self.command[0]!r}: {e}",
                test_id=self.test_id,
                workspace=self.workspace,
            ) from e
        _logger.info(
            "Started server %s (pid %d)",
            " ".join(self.command),
            self.process.pid,
            extra={"test_id": self.test_id},
        )

    async def wait(self, timeout: float) -> int | None:
        """Wait up to ``timeout`` seconds for exit; return the exit code or None."""
        if self.process is None:
            return None
        try:
            return await asyncio.wait_for(self.process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    async def terminate(self) -> None:
        """Terminate the server, killing it if it ignores the request. Idempotent."""
        process = self.process
        if process is not None and process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass
            if await self.wait(_TERMINATE_GRACE) is None:
                _logger.warning(
                    "Server did not exit after terminate; killing it",
                    extra={"test_id": self.test_id},
                )
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
        if process is not None:
            _logger.debug(
                "Server exited with code %s",
                process.returncode,
                extra={"test_id": self.test_id},
            )
        self._close_stderr()

    def _close_stderr(self) -> None:
        if self._stderr is not None:
            self._stderr.close()
            self._stderr = None
