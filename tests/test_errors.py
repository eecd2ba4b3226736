"""Tests for the harness failure taxonomy."""

from __future__ import annotations

from pathlib import Path

import pytest

from lsprig.errors import (
    DeserializeError,
    EmptyResponseError,
    HarnessError,
    NoResultsError,
    ProcessLaunchError,
    ResponseMismatchError,
    ServerError,
    SetupError,
    TimeoutExceeded,
    WorkspaceIOError,
)


class TestHarnessError:
    """Tests for the common error base."""

    @pytest.mark.parametrize(
        "error_type",
        [
            SetupError,
            WorkspaceIOError,
            ProcessLaunchError,
            NoResultsError,
        ],
    )
    def test_subclasses_share_base(self, error_type: type[HarnessError]) -> None:
        """Every failure can be caught as HarnessError."""
        with pytest.raises(HarnessError):
            raise error_type("broken")

    def test_str_includes_test_id_and_workspace(self, tmp_path: Path) -> None:
        """The identifier and retained workspace are part of the message."""
        error = SetupError("no cursor", test_id="abc123", workspace=tmp_path)
        text = str(error)
        assert text.startswith("Test abc123: no cursor")
        assert str(tmp_path) in text

    def test_str_without_context(self) -> None:
        """Without context the message is shown as is."""
        assert str(NoResultsError("nothing")) == "nothing"

    def test_context_can_be_filled_later(self) -> None:
        """The runner attaches test_id after the fact."""
        error = NoResultsError("nothing")
        error.test_id = "late"
        assert str(error) == "Test late: nothing"


class TestSpecificErrors:
    """Tests for messages of the specific failure kinds."""

    def test_timeout_message(self) -> None:
        """Timeouts report the limit and any recorded errors."""
        error = TimeoutExceeded(0.5, errors="server crashed")
        assert "0.500s" in error.message
        assert "server crashed" in error.message
        assert error.timeout == 0.5

    def test_timeout_without_errors(self) -> None:
        """No error section appears when nothing was recorded."""
        assert "Recorded errors" not in TimeoutExceeded(1.0).message

    def test_empty_response_keeps_expected(self) -> None:
        """The expected value is kept for reporting."""
        error = EmptyResponseError([1, 2])
        assert error.expected == [1, 2]
        assert "[1, 2]" in error.message

    def test_server_error_fields(self) -> None:
        """JSON-RPC error details are preserved."""
        error = ServerError(-32603, "internal", data={"trace": "x"})
        assert error.code == -32603
        assert error.error_message == "internal"
        assert error.data == {"trace": "x"}
        assert "-32603" in str(error)

    def test_deserialize_error_names_type(self) -> None:
        """The target type and detail are part of the message."""
        error = DeserializeError("Hover", "missing contents", payload={})
        assert "Hover" in error.message
        assert "missing contents" in error.message
        assert error.payload == {}

    def test_mismatch_reports_path(self) -> None:
        """The first differing path is named in the message."""
        error = ResponseMismatchError(
            "textDocument/hover",
            path="contents.kind",
            expected="markdown",
            actual="plaintext",
            rendered="diff",
        )
        assert "contents.kind" in error.message
        assert "textDocument/hover" in error.message

    def test_mismatch_root_path(self) -> None:
        """An empty path is shown as the root."""
        error = ResponseMismatchError(
            "textDocument/hover", path="", expected=1, actual=2, rendered=""
        )
        assert "<root>" in error.message
