"""Pipeline behavior against servers that misbehave in specific ways."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from lsprotocol import types

from lsprig import (
    EndState,
    ResponseMismatchError,
    check_diagnostics,
    check_formatting,
    check_hover,
)
from lsprig.harness.models import SourceFile, TestCase
from lsprig.settings import HarnessSettings

from tests.e2e.cases import SOURCE_TEXT

SCRIPTED_SERVER = Path(__file__).with_name("scripted_server.py")
HOVER = {"contents": {"kind": "markdown", "value": "scripted"}}
ORIGIN = types.Position(line=0, character=0)


def scripted_case(scenario: str, **overrides: object) -> TestCase:
    values: dict[str, object] = {
        "server": (sys.executable, str(SCRIPTED_SERVER), "--scenario", scenario),
        "source": SourceFile("main.rs", SOURCE_TEXT),
        "cursor": types.Position(line=0, character=3),
    }
    values.update(overrides)
    return TestCase(**values)  # type: ignore[arg-type]


@pytest.mark.e2e
class TestSlowExit:
    """Shutdown does not count against the request timeout."""

    def test_lingering_server_keeps_its_result(self, settings: HarnessSettings) -> None:
        """A correct answer stands even when the server exits late."""
        case = scripted_case("slow-exit", timeout=1.0)

        assert check_hover(case, HOVER, settings).passed

        root = settings.workspace_dir / case.test_id
        assert (root / "results").exists()
        assert not (root / "timeout").exists()


@pytest.mark.e2e
class TestForeignDiagnostics:
    """Only diagnostics for the primary file are captured."""

    def test_other_file_published_first(self, settings: HarnessSettings) -> None:
        """A publish for another file fires readiness but is not captured."""
        case = scripted_case("foreign-diagnostics")
        expected = [
            types.Diagnostic(
                range=types.Range(start=ORIGIN, end=ORIGIN), message="primary file"
            )
        ]

        assert check_diagnostics(case, expected, settings).passed

        log = (settings.workspace_dir / case.test_id / "log").read_text()
        assert "Ready on diagnostics for another file" in log


@pytest.mark.e2e
class TestOverlappingEdits:
    """Unapplicable edits are reported as a mismatch."""

    def test_end_state_with_overlapping_edits(self, settings: HarnessSettings) -> None:
        """The failure names the case and points at the document."""
        case = scripted_case("overlapping-edits")
        with pytest.raises(ResponseMismatchError) as excinfo:
            check_formatting(case, EndState(SOURCE_TEXT), settings=settings)

        error = excinfo.value
        assert error.path == "<document>"
        assert "Overlapping text edits" in error.rendered
        assert error.test_id == case.test_id
        assert error.workspace == settings.workspace_dir / case.test_id
