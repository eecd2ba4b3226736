"""Per-test workspace provisioning and artifact access.

Layout under ``<base>/<test_id>/``::

    src/<source files>
    results          JSON payload of the server's response
    empty            zero-byte marker: the server returned nothing
    timeout          zero-byte marker: the run exceeded its timeout
    error            append-only error text
    log              append-only log text (including server stderr)
    control.json     the rendered request plan
    capabilities.json
    <side files>
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path, PurePosixPath
from typing import Any

from pygls.uris import from_fs_path, to_fs_path

from lsprig.errors import WorkspaceIOError
from lsprig.harness.models import TestCase
from lsprig.logging import get_logger
from lsprig.settings import Retention

__all__ = ["ARTIFACT_NAMES", "Workspace"]

RESULTS = "results"
EMPTY = "empty"
TIMEOUT = "timeout"
ERROR = "error"
LOG = "log"
PLAN = "control.json"
CAPABILITIES = "capabilities.json"

ARTIFACT_NAMES = frozenset({RESULTS, EMPTY, TIMEOUT, ERROR, LOG, PLAN, CAPABILITIES, "src"})

_logger = get_logger("harness.workspace")


class Workspace:
    """An isolated directory tree owned by exactly one test run."""

    def __init__(self, root: Path, *, test_id: str, primary: str) -> None:
        self.root = root
        self.test_id = test_id
        self.src_dir = root / "src"
        self.primary_path = self.src_dir / primary
        self._src_prefixes = _path_prefixes(self.src_dir)

    @classmethod
    def provision(cls, case: TestCase, base_dir: Path) -> Workspace:
        """
        Create the workspace for ``case`` and materialize its files.

        Args:
            case: The validated test case.
            base_dir: Directory under which the ``<test_id>`` root is created.

        Returns:
            The provisioned workspace.

        Raises:
            WorkspaceIOError: If the tree cannot be created or written, or the
                root already exists.
        """
        root = base_dir / case.test_id
        workspace = cls(root, test_id=case.test_id, primary=case.source.path)

        for name in case.side_files:
            if name in ARTIFACT_NAMES:
                raise WorkspaceIOError(
                    f'Side file "{name}" collides with a workspace artifact',
                    test_id=case.test_id,
                )

        try:
            base_dir.mkdir(parents=True, exist_ok=True)
            root.mkdir()
            workspace.src_dir.mkdir()
            for source_file in case.files:
                path = workspace.src_dir / source_file.path
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(source_file.contents, encoding="utf-8")
            for name, contents in case.side_files.items():
                (root / name).write_text(contents, encoding="utf-8")
        except FileExistsError:
            raise WorkspaceIOError(
                f"Workspace root {root} already exists", test_id=case.test_id
            ) from None
        except OSError as e:
            raise WorkspaceIOError(
                f"Failed to provision workspace: {e}",
                test_id=case.test_id,
                workspace=root,
            ) from e

        _logger.debug(
            "Provisioned workspace %s (%d files)",
            root,
            len(case.files),
            extra={"test_id": case.test_id},
        )
        return workspace

    # Paths

    @property
    def results_path(self) -> Path:
        return self.root / RESULTS

    @property
    def empty_path(self) -> Path:
        return self.root / EMPTY

    @property
    def timeout_path(self) -> Path:
        return self.root / TIMEOUT

    @property
    def error_path(self) -> Path:
        return self.root / ERROR

    @property
    def log_path(self) -> Path:
        return self.root / LOG

    @property
    def plan_path(self) -> Path:
        return self.root / PLAN

    @property
    def capabilities_path(self) -> Path:
        return self.root / CAPABILITIES

    @property
    def root_uri(self) -> str:
        return _as_uri(self.src_dir)

    def uri_for(self, relative: str) -> str:
        """Absolute ``file://`` URI of a path relative to ``src/``."""
        return _as_uri(self.src_dir / relative)

    def relative_uri(self, uri: str) -> str | None:
        """
        Path of ``uri`` relative to ``src/``, or None if it is not under it.

        Example:
            ``file:///tmp/lsprig/<id>/src/main.rs`` -> ``main.rs``
        """
        if not uri.startswith("file:"):
            return None
        fs_path = to_fs_path(uri)
        if fs_path is None:
            return None
        candidate = PurePosixPath(Path(fs_path).as_posix())
        for prefix in self._src_prefixes:
            try:
                relative = candidate.relative_to(prefix)
            except ValueError:
                continue
            return relative.as_posix()
        return None

    # Artifacts

    def write_json(self, path: Path, payload: Any) -> None:
        try:
            path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            raise WorkspaceIOError(
                f"Failed to write {path.name}: {e}",
                test_id=self.test_id,
                workspace=self.root,
            ) from e

    def write_results(self, payload: Any) -> None:
        self.write_json(self.results_path, payload)

    def mark_empty(self) -> None:
        self._touch(self.empty_path)

    def mark_timeout(self) -> None:
        self._touch(self.timeout_path)

    def report_error(self, message: str) -> None:
        self._append(self.error_path, message)

    def report_log(self, message: str) -> None:
        self._append(self.log_path, message)

    def read_text(self, path: Path) -> str:
        """Contents of an artifact, or "" if it was never written."""
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise WorkspaceIOError(
                f"Failed to read {path.name}: {e}",
                test_id=self.test_id,
                workspace=self.root,
            ) from e

    def _touch(self, path: Path) -> None:
        try:
            path.write_bytes(b"")
        except OSError as e:
            raise WorkspaceIOError(
                f"Failed to create marker {path.name}: {e}",
                test_id=self.test_id,
                workspace=self.root,
            ) from e

    def _append(self, path: Path, message: str) -> None:
        if not message.endswith("\n"):
            message += "\n"
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(message)
        except OSError as e:
            raise WorkspaceIOError(
                f"Failed to append to {path.name}: {e}",
                test_id=self.test_id,
                workspace=self.root,
            ) from e

    # Cleanup

    def finish(self, *, passed: bool, retention: Retention) -> bool:
        """
        Apply the retention policy once the outcome is known.

        Returns:
            True if the workspace was kept.
        """
        if retention.keep(passed=passed):
            _logger.info(
                "Keeping workspace %s",
                self.root,
                extra={"test_id": self.test_id},
            )
            return True
        try:
            shutil.rmtree(self.root)
        except OSError:
            _logger.warning(
                "Failed to remove workspace %s",
                self.root,
                exc_info=True,
                extra={"test_id": self.test_id},
            )
        return False


def _as_uri(path: Path) -> str:
    uri = from_fs_path(str(path))
    if uri is None:
        return path.absolute().as_uri()
    return uri


def _path_prefixes(src_dir: Path) -> tuple[PurePosixPath, ...]:
    """The ``src/`` path as written and as resolved through symlinks."""
    prefixes = [PurePosixPath(src_dir.absolute().as_posix())]
    try:
        resolved = PurePosixPath(src_dir.resolve().as_posix())
    except OSError:
        resolved = prefixes[0]
    if resolved != prefixes[0]:
        prefixes.append(resolved)
    return tuple(prefixes)
