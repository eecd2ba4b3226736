"""Fixtures for end-to-end tests against the fixture server."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from lsprotocol import types

import lsprig
from lsprig.fixture.responses import OTHER_PATH, SOURCE_PATH
from lsprig.harness.client import JsonRpcClient
from lsprig.harness.models import SourceFile, TestCase
from lsprig.settings import HarnessSettings, Retention
from tests.e2e.cases import FIXTURE_COMMAND, OTHER_TEXT, SOURCE_TEXT, CaseFactory


@pytest.fixture(autouse=True)
def _fixture_importable(monkeypatch: pytest.MonkeyPatch) -> None:
    """Let server subprocesses import lsprig from this checkout."""
    src = str(Path(lsprig.__file__).resolve().parents[1])
    existing = os.environ.get("PYTHONPATH")
    monkeypatch.setenv(
        "PYTHONPATH", src if not existing else os.pathsep.join([src, existing])
    )


@pytest.fixture
def settings(tmp_path: Path) -> HarnessSettings:
    """Keep every workspace so assertions can inspect artifacts."""
    return HarnessSettings(
        workspace_dir=tmp_path / "workspaces",
        retention=Retention.ALWAYS,
        timeout=15.0,
    )


@pytest.fixture
def make_case() -> CaseFactory:
    """Build a case for the fixture server answering with ``response_num``."""

    def factory(
        response_num: int,
        *,
        side_files: dict[str, str] | None = None,
        **overrides: object,
    ) -> TestCase:
        values: dict[str, object] = {
            "server": FIXTURE_COMMAND,
            "source": SourceFile(SOURCE_PATH, SOURCE_TEXT),
            "other_files": [SourceFile(OTHER_PATH, OTHER_TEXT)],
            "side_files": {"response_num": str(response_num), **(side_files or {})},
            "cursor": types.Position(line=0, character=3),
        }
        values.update(overrides)
        return TestCase(**values)  # type: ignore[arg-type]

    return factory


@pytest.fixture
async def fixture_process(
    tmp_path: Path,
) -> AsyncGenerator[asyncio.subprocess.Process, None]:
    """Start the fixture server directly, outside the harness pipeline."""
    (tmp_path / "src").mkdir()
    (tmp_path / "response_num").write_text("1")
    process = await asyncio.create_subprocess_exec(
        *FIXTURE_COMMAND,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    yield process

    if process.returncode is None:
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            process.kill()


@pytest.fixture
async def fixture_client(
    fixture_process: asyncio.subprocess.Process,
) -> AsyncGenerator[tuple[JsonRpcClient, list[tuple[str, object]]], None]:
    """A JSON-RPC client connected to the fixture server's stdio."""
    assert fixture_process.stdin is not None
    assert fixture_process.stdout is not None
    notifications: list[tuple[str, object]] = []
    client = JsonRpcClient(
        reader=fixture_process.stdout,
        writer=fixture_process.stdin,
        on_notification=lambda method, params: notifications.append((method, params)),
    )
    client.start()
    yield client, notifications
    await client.close()
