"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from lsprig.logging import configure_logging, get_logger, mirror_to_file


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_default_level_is_info(self) -> None:
        """Without arguments the lsprig logger logs at INFO."""
        configure_logging()
        assert logging.getLogger("lsprig").level == logging.INFO

    def test_level_name_is_case_insensitive(self) -> None:
        """Lower-case level names are accepted."""
        configure_logging(level="debug")
        assert logging.getLogger("lsprig").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        """An unrecognised level name does not raise."""
        configure_logging(level="chatty")
        assert logging.getLogger("lsprig").level == logging.INFO

    def test_writes_to_log_file(self, tmp_path: Path) -> None:
        """Records reach the configured file."""
        log_file = tmp_path / "fixture.log"
        configure_logging(log_file=log_file)
        logger = logging.getLogger("lsprig")

        logger.info("fixture started")
        for handler in logger.handlers:
            handler.flush()

        assert "fixture started" in log_file.read_text()

    def test_reconfiguring_replaces_handlers(self) -> None:
        """Calling twice leaves a single handler installed."""
        configure_logging()
        configure_logging(level="ERROR")
        assert len(logging.getLogger("lsprig").handlers) == 1


class TestGetLogger:
    """Tests for get_logger function."""

    def test_prefixes_namespace(self) -> None:
        """Loggers live under the lsprig namespace."""
        assert get_logger("harness.runner").name == "lsprig.harness.runner"


class TestMirrorToFile:
    """Tests for the per-test log mirror."""

    def test_mirrors_matching_and_untagged_records(self, tmp_path: Path) -> None:
        """Records for this test and untagged records are written."""
        log_path = tmp_path / "log"
        logger = get_logger("harness.test")

        with mirror_to_file(log_path, test_id="case-a"):
            logger.info("tagged", extra={"test_id": "case-a"})
            logger.info("untagged")

        content = log_path.read_text()
        assert "tagged" in content
        assert "untagged" in content

    def test_skips_records_from_other_tests(self, tmp_path: Path) -> None:
        """Records tagged with another test id stay out of the file."""
        log_path = tmp_path / "log"
        logger = get_logger("harness.test")

        with mirror_to_file(log_path, test_id="case-a"):
            logger.info("from b", extra={"test_id": "case-b"})

        assert "from b" not in log_path.read_text()

    def test_captures_debug_records(self, tmp_path: Path) -> None:
        """Debug records are mirrored even when the logger is quieter."""
        log_path = tmp_path / "log"
        logger = get_logger("harness.test")

        with mirror_to_file(log_path, test_id="case-a"):
            logger.debug("details")

        assert "details" in log_path.read_text()

    def test_handler_removed_on_exit(self, tmp_path: Path) -> None:
        """The handler is detached and the level restored afterwards."""
        harness = logging.getLogger("lsprig.harness")
        level = harness.level

        with mirror_to_file(tmp_path / "log", test_id="case-a") as handler:
            assert handler in harness.handlers

        assert handler not in harness.handlers
        assert harness.level == level

    def test_interleaved_mirrors_restore_level(self, tmp_path: Path) -> None:
        """Mirrors closed out of order still restore the original level."""
        harness = logging.getLogger("lsprig.harness")
        level = harness.level

        first = mirror_to_file(tmp_path / "a.log", test_id="case-a")
        second = mirror_to_file(tmp_path / "b.log", test_id="case-b")
        first.__enter__()
        second.__enter__()
        first.__exit__(None, None, None)
        assert harness.getEffectiveLevel() <= logging.DEBUG
        second.__exit__(None, None, None)

        assert harness.level == level
