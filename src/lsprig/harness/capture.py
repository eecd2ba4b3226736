"""Reading the run's outcome back from the workspace artifacts."""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from lsprig.errors import DeserializeError
from lsprig.harness.workspace import Workspace
from lsprig.types import StrEnum

__all__ = ["CaptureKind", "CapturedResponse", "capture"]


class CaptureKind(StrEnum):
    RESULT = "result"
    EMPTY = "empty"
    TIMEOUT = "timeout"
    NONE = "none"


@dataclasses.dataclass(frozen=True)
class CapturedResponse:
    kind: CaptureKind
    payload: Any = None
    errors: str = ""
    log: str = ""


def capture(workspace: Workspace) -> CapturedResponse:
    """
    Inspect the artifacts in priority order: timeout, empty, results.

    The ``error`` and ``log`` text is read regardless of the outcome.

    Raises:
        DeserializeError: If the results artifact is not valid JSON.
    """
    errors = workspace.read_text(workspace.error_path)
    log = workspace.read_text(workspace.log_path)

    if workspace.timeout_path.exists():
        return CapturedResponse(CaptureKind.TIMEOUT, errors=errors, log=log)
    if workspace.empty_path.exists():
        return CapturedResponse(CaptureKind.EMPTY, errors=errors, log=log)
    if workspace.results_path.exists():
        raw = workspace.read_text(workspace.results_path)
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DeserializeError(
                "JSON",
                str(e),
                payload=raw,
                test_id=workspace.test_id,
                workspace=workspace.root,
            ) from e
        return CapturedResponse(CaptureKind.RESULT, payload, errors=errors, log=log)
    return CapturedResponse(CaptureKind.NONE, errors=errors, log=log)
