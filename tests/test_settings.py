"""Tests for environment-driven harness settings."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from lsprig.errors import SetupError
from lsprig.settings import DEFAULT_TIMEOUT, HarnessSettings, Retention


class TestRetention:
    """Tests for the workspace retention policy."""

    @pytest.mark.parametrize(
        ("retention", "passed", "kept"),
        [
            (Retention.ALWAYS, True, True),
            (Retention.ALWAYS, False, True),
            (Retention.ON_FAILURE, True, False),
            (Retention.ON_FAILURE, False, True),
            (Retention.NEVER, True, False),
            (Retention.NEVER, False, False),
        ],
    )
    def test_keep(self, retention: Retention, passed: bool, kept: bool) -> None:
        """Each policy decides from the outcome alone."""
        assert retention.keep(passed=passed) is kept

    def test_str_is_value(self) -> None:
        """Policies print as their environment spelling."""
        assert str(Retention.ON_FAILURE) == "on-failure"


class TestFromEnv:
    """Tests for HarnessSettings.from_env."""

    def test_defaults(self) -> None:
        """An empty environment yields the built-in defaults."""
        settings = HarnessSettings.from_env({})
        assert settings.workspace_dir == Path(tempfile.gettempdir()) / "lsprig"
        assert settings.retention is Retention.ON_FAILURE
        assert settings.timeout == DEFAULT_TIMEOUT
        assert settings.log_level is None

    def test_reads_all_variables(self, tmp_path: Path) -> None:
        """Every LSPRIG_* variable is honoured."""
        settings = HarnessSettings.from_env(
            {
                "LSPRIG_WORKSPACE_DIR": str(tmp_path),
                "LSPRIG_RETENTION": "Always",
                "LSPRIG_TIMEOUT": "2.5",
                "LSPRIG_LOG_LEVEL": "debug",
            }
        )
        assert settings == HarnessSettings(
            workspace_dir=tmp_path,
            retention=Retention.ALWAYS,
            timeout=2.5,
            log_level="DEBUG",
        )

    def test_blank_values_use_defaults(self) -> None:
        """Whitespace-only values count as unset."""
        settings = HarnessSettings.from_env({"LSPRIG_TIMEOUT": "  ", "LSPRIG_RETENTION": ""})
        assert settings.timeout == DEFAULT_TIMEOUT
        assert settings.retention is Retention.ON_FAILURE

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("LSPRIG_RETENTION", "sometimes"),
            ("LSPRIG_TIMEOUT", "soon"),
            ("LSPRIG_TIMEOUT", "0"),
            ("LSPRIG_TIMEOUT", "-1"),
            ("LSPRIG_LOG_LEVEL", "LOUD"),
        ],
    )
    def test_invalid_values_raise(self, name: str, value: str) -> None:
        """Malformed variables are reported as setup errors."""
        with pytest.raises(SetupError, match=name):
            HarnessSettings.from_env({name: value})
