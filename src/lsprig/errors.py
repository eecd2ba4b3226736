"""Failure taxonomy for lsprig test runs.

Every failure carries the test identifier and, when one was provisioned, the
workspace root so a retained directory can be inspected after the fact.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

__all__ = [
    "DeserializeError",
    "EmptyResponseError",
    "HarnessError",
    "NoResultsError",
    "ProcessLaunchError",
    "ResponseMismatchError",
    "ServerError",
    "SetupError",
    "TimeoutExceeded",
    "WorkspaceIOError",
]


class HarnessError(Exception):
    """Base class for all harness failures."""

    def __init__(
        self,
        message: str,
        *,
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.test_id = test_id
        self.workspace = workspace

    def __str__(self) -> str:
        prefix = f"Test {self.test_id}: " if self.test_id else ""
        suffix = f"\n(workspace: {self.workspace})" if self.workspace else ""
        return f"{prefix}{self.message}{suffix}"


class SetupError(HarnessError):
    """The test case cannot be run as described."""


class WorkspaceIOError(HarnessError):
    """Reading or writing the workspace failed."""


class ProcessLaunchError(HarnessError):
    """The server-under-test could not be started."""


class TimeoutExceeded(HarnessError):
    """Readiness or the response did not arrive within the case timeout."""

    def __init__(
        self,
        timeout: float,
        *,
        errors: str = "",
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        message = f"Test timeout of {timeout:.3f}s exceeded"
        if errors:
            message = f"{message}\nRecorded errors:\n{errors}"
        super().__init__(message, test_id=test_id, workspace=workspace)
        self.timeout = timeout
        self.errors = errors


class EmptyResponseError(HarnessError):
    """The server returned an explicitly empty response, but a value was expected."""

    def __init__(
        self,
        expected: Any,
        *,
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        super().__init__(
            f"Expected a response, got an empty one\nExpected: {expected!r}",
            test_id=test_id,
            workspace=workspace,
        )
        self.expected = expected


class NoResultsError(HarnessError):
    """The run finished without writing a result, empty, or timeout artifact."""


class ServerError(HarnessError):
    """The server answered the request with a JSON-RPC error."""

    def __init__(
        self,
        code: int,
        error_message: str,
        *,
        data: Any = None,
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        super().__init__(
            f"Server returned error {code}: {error_message}",
            test_id=test_id,
            workspace=workspace,
        )
        self.code = code
        self.error_message = error_message
        self.data = data


class DeserializeError(HarnessError):
    """The captured payload does not match the expected response type.

    Usually a schema or protocol-version skew rather than a server bug.
    """

    def __init__(
        self,
        type_name: str,
        detail: str,
        *,
        payload: Any = None,
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        super().__init__(
            f"Could not deserialize response as {type_name}: {detail}",
            test_id=test_id,
            workspace=workspace,
        )
        self.type_name = type_name
        self.detail = detail
        self.payload = payload


class ResponseMismatchError(HarnessError):
    """The deserialized response differs from the expectation."""

    def __init__(
        self,
        method: str,
        *,
        path: str,
        expected: Any,
        actual: Any,
        rendered: str,
        test_id: str | None = None,
        workspace: Path | None = None,
    ) -> None:
        location = path or "<root>"
        super().__init__(
            f"Incorrect {method} response (first difference at {location}):\n"
            f"{rendered}",
            test_id=test_id,
            workspace=workspace,
        )
        self.method = method
        self.path = path
        self.expected = expected
        self.actual = actual
        self.rendered = rendered
