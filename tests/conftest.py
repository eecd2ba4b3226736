"""Shared fixtures for the lsprig test suite."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from lsprig.settings import HarnessSettings, Retention


@pytest.fixture(autouse=True)
def _restore_lsprig_logger() -> Iterator[None]:
    """Undo configure_logging() so later tests can still use caplog."""
    logger = logging.getLogger("lsprig")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def settings(tmp_path: Path) -> HarnessSettings:
    """Harness settings rooted in a per-test temporary directory."""
    return HarnessSettings(
        workspace_dir=tmp_path / "workspaces",
        retention=Retention.ALWAYS,
        timeout=5.0,
    )
