"""Tests for readiness signals."""

from __future__ import annotations

import asyncio

import pytest

from lsprig.harness.models import ProgressStart, SimpleStart
from lsprig.harness.readiness import (
    ProgressReadiness,
    ReadinessState,
    SimpleReadiness,
    readiness_for,
)


def progress(token: str, kind: str) -> dict[str, object]:
    return {"token": token, "value": {"kind": kind}}


class TestSimpleReadiness:
    """Tests for threshold-based readiness."""

    def test_first_trigger_fires_by_default(self) -> None:
        """Threshold one fires on the attach."""
        readiness = SimpleReadiness(1)
        assert readiness.trigger() is True
        assert readiness.is_ready
        assert readiness.state is ReadinessState.READY

    def test_fires_exactly_at_threshold(self) -> None:
        """Earlier triggers are reported, later ones ignored."""
        lines: list[str] = []
        readiness = SimpleReadiness(3, report=lines.append)

        assert [readiness.trigger() for _ in range(4)] == [False, False, True, False]
        assert lines == ["1 < 3", "2 < 3"]
        assert readiness.attempt == 3

    def test_never_fires_below_threshold(self) -> None:
        """Two triggers do not satisfy a threshold of three."""
        readiness = SimpleReadiness(3)
        readiness.trigger()
        readiness.trigger()
        assert not readiness.is_ready
        assert readiness.state is ReadinessState.NOT_READY

    async def test_wait_returns_after_fire(self) -> None:
        """Waiters are released by the firing trigger."""
        readiness = SimpleReadiness(2)
        waiter = asyncio.create_task(readiness.wait())
        readiness.trigger()
        await asyncio.sleep(0)
        assert not waiter.done()
        readiness.trigger()
        await asyncio.wait_for(waiter, 1)


class TestProgressReadiness:
    """Tests for progress-based readiness."""

    def test_counts_only_matching_end_events(self) -> None:
        """Begin events and other tokens are ignored."""
        readiness = ProgressReadiness(2, "indexing")

        assert readiness.on_progress(progress("indexing", "begin")) is False
        assert readiness.on_progress(progress("other", "end")) is False
        assert readiness.on_progress(progress("indexing", "end")) is False
        assert readiness.on_progress(progress("indexing", "end")) is True
        assert readiness.attempt == 2

    def test_numeric_token_matches_string(self) -> None:
        """Integer tokens compare by their text."""
        readiness = ProgressReadiness(1, "7")
        assert readiness.on_progress({"token": 7, "value": {"kind": "end"}}) is True

    def test_malformed_params_are_ignored(self) -> None:
        """Unexpected payloads do not count."""
        readiness = ProgressReadiness(1, "t")
        assert readiness.on_progress(None) is False
        assert readiness.on_progress({"token": "t", "value": "end"}) is False

    def test_reports_intermediate_events(self) -> None:
        """Each counted event below the ordinal is reported."""
        lines: list[str] = []
        readiness = ProgressReadiness(2, "t", report=lines.append)
        readiness.on_progress(progress("t", "end"))
        assert lines == ["Progress end 1 < 2 (t)"]


class TestTransitions:
    """Tests for the readiness state machine."""

    def test_full_lifecycle(self) -> None:
        """Ready, issued, received in order."""
        readiness = SimpleReadiness(1)
        readiness.trigger()
        readiness.mark_issued()
        readiness.mark_received()
        assert readiness.state is ReadinessState.RESPONSE_RECEIVED

    def test_issue_before_ready_raises(self) -> None:
        """Requests cannot be issued before readiness."""
        with pytest.raises(RuntimeError, match="Invalid readiness transition"):
            SimpleReadiness(1).mark_issued()

    def test_timeout_after_issue(self) -> None:
        """An outstanding request can time out."""
        readiness = SimpleReadiness(1)
        readiness.trigger()
        readiness.mark_issued()
        readiness.mark_timed_out()
        assert readiness.state is ReadinessState.TIMED_OUT

    def test_timeout_after_response_is_ignored(self) -> None:
        """A received response is not overwritten by a late timeout."""
        readiness = SimpleReadiness(1)
        readiness.trigger()
        readiness.mark_issued()
        readiness.mark_received()
        readiness.mark_timed_out()
        assert readiness.state is ReadinessState.RESPONSE_RECEIVED


class TestReadinessFor:
    """Tests for readiness_for."""

    def test_builds_matching_signal(self) -> None:
        """Start descriptions map to their signal types."""
        simple = readiness_for(SimpleStart(2))
        assert isinstance(simple, SimpleReadiness)
        assert simple.threshold == 2

        progress_signal = readiness_for(ProgressStart(3, "tok"))
        assert isinstance(progress_signal, ProgressReadiness)
        assert (progress_signal.ordinal, progress_signal.token) == (3, "tok")

    def test_unknown_start_raises(self) -> None:
        """Anything else is a programming error."""
        with pytest.raises(TypeError):
            readiness_for(object())  # type: ignore[arg-type]
