"""Logging configuration for lsprig.

Harness modules log under the ``lsprig`` namespace. While a test case runs,
records are additionally mirrored into the workspace ``log`` artifact so a
retained workspace carries its own history.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_mirror_lock = threading.Lock()
_active_mirrors = 0
_saved_level = logging.NOTSET


def _formatter() -> logging.Formatter:
    return logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)


def configure_logging(*, level: str = "INFO", log_file: Path | None = None) -> None:
    """
    Configure logging for lsprig.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs to stderr.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("lsprig")
    logger.setLevel(log_level)

    # Reconfiguring replaces handlers instead of stacking them
    logger.handlers.clear()

    if log_file is not None:
        handler: logging.Handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(_formatter())
    handler.setLevel(log_level)
    logger.addHandler(handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name under lsprig namespace.

    Args:
        name: Logger name (will be prefixed with 'lsprig.').

    Returns:
        Logger instance.
    """
    return logging.getLogger(f"lsprig.{name}")


@contextmanager
def mirror_to_file(path: Path, *, test_id: str) -> Iterator[logging.Handler]:
    """
    Mirror harness log records for one test case into ``path``.

    Only records emitted while the context is active and tagged with the
    given ``test_id`` (via ``extra={"test_id": ...}``) or carrying no tag are
    written, so concurrent cases do not leak into each other's artifacts.

    Args:
        path: File to append records to (the workspace ``log`` artifact).
        test_id: Identifier of the running test case.

    Yields:
        The installed handler.
    """
    global _active_mirrors, _saved_level

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(_formatter())
    handler.setLevel(logging.DEBUG)
    handler.addFilter(
        lambda record: getattr(record, "test_id", test_id) == test_id
    )

    logger = logging.getLogger("lsprig.harness")
    with _mirror_lock:
        # The first active mirror lowers the level; the last one restores it
        if _active_mirrors == 0:
            _saved_level = logger.level
            if logger.getEffectiveLevel() > logging.DEBUG:
                logger.setLevel(logging.DEBUG)
        _active_mirrors += 1
        logger.addHandler(handler)
    try:
        yield handler
    finally:
        with _mirror_lock:
            logger.removeHandler(handler)
            _active_mirrors -= 1
            if _active_mirrors == 0:
                logger.setLevel(_saved_level)
        handler.close()
