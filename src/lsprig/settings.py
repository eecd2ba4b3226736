"""Environment-driven settings for the harness."""

from __future__ import annotations

import dataclasses
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from lsprig.errors import SetupError
from lsprig.types import StrEnum

__all__ = [
    "DEFAULT_TIMEOUT",
    "HarnessSettings",
    "Retention",
]

DEFAULT_TIMEOUT = 1.0

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Retention(StrEnum):
    """What happens to a workspace once the outcome is known."""

    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    NEVER = "never"

    def keep(self, *, passed: bool) -> bool:
        if self is Retention.ALWAYS:
            return True
        if self is Retention.NEVER:
            return False
        return not passed


def _env_text(env: Mapping[str, str], name: str) -> str:
    return env.get(name, "").strip()


@dataclasses.dataclass(frozen=True)
class HarnessSettings:
    """Process-wide defaults, overridable per test case."""

    workspace_dir: Path
    retention: Retention = Retention.ON_FAILURE
    timeout: float = DEFAULT_TIMEOUT
    log_level: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> HarnessSettings:
        """
        Build settings from ``LSPRIG_*`` environment variables.

        Recognized variables:
            LSPRIG_WORKSPACE_DIR: base directory for workspaces
                (default: ``<tempdir>/lsprig``).
            LSPRIG_RETENTION: ``always``, ``on-failure`` or ``never``.
            LSPRIG_TIMEOUT: default timeout in seconds.
            LSPRIG_LOG_LEVEL: configure ``lsprig`` logging at this level.

        Raises:
            SetupError: If a variable holds an invalid value.
        """
        if env is None:
            env = os.environ

        raw_dir = _env_text(env, "LSPRIG_WORKSPACE_DIR")
        workspace_dir = (
            Path(raw_dir) if raw_dir else Path(tempfile.gettempdir()) / "lsprig"
        )

        raw_retention = _env_text(env, "LSPRIG_RETENTION").lower()
        try:
            retention = (
                Retention(raw_retention) if raw_retention else Retention.ON_FAILURE
            )
        except ValueError:
            raise SetupError(
                f"Invalid LSPRIG_RETENTION {raw_retention!r} "
                f"(expected one of: {', '.join(r.value for r in Retention)})"
            ) from None

        raw_timeout = _env_text(env, "LSPRIG_TIMEOUT")
        timeout = DEFAULT_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise SetupError(f"Invalid LSPRIG_TIMEOUT {raw_timeout!r}") from None
            if timeout <= 0:
                raise SetupError(f"LSPRIG_TIMEOUT must be positive, got {timeout}")

        raw_level = _env_text(env, "LSPRIG_LOG_LEVEL").upper()
        if raw_level and raw_level not in _LOG_LEVELS:
            raise SetupError(f"Invalid LSPRIG_LOG_LEVEL {raw_level!r}")

        return cls(
            workspace_dir=workspace_dir,
            retention=retention,
            timeout=timeout,
            log_level=raw_level or None,
        )
