"""Deciding when the server is ready for the request under test."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from lsprig.harness.models import ProgressStart, SimpleStart, StartType
from lsprig.types import StrEnum

__all__ = [
    "ProgressReadiness",
    "Readiness",
    "ReadinessState",
    "SimpleReadiness",
    "readiness_for",
]


class ReadinessState(StrEnum):
    NOT_READY = "not-ready"
    READY = "ready"
    REQUEST_ISSUED = "request-issued"
    RESPONSE_RECEIVED = "response-received"
    TIMED_OUT = "timed-out"


def _ignore(_: str) -> None:
    return None


class Readiness:
    """
    Base readiness signal.

    Subclasses count events and call ``_fire`` exactly once. ``report``
    receives one line per transition for the workspace log.
    """

    def __init__(self, *, report: Callable[[str], None] | None = None) -> None:
        self.state = ReadinessState.NOT_READY
        self.attempt = 0
        self._report = report or _ignore
        self._ready = asyncio.Event()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def wait(self) -> None:
        """Suspend until the signal fires."""
        await self._ready.wait()

    def mark_issued(self) -> None:
        self._transition(ReadinessState.READY, ReadinessState.REQUEST_ISSUED)

    def mark_received(self) -> None:
        self._transition(ReadinessState.REQUEST_ISSUED, ReadinessState.RESPONSE_RECEIVED)

    def mark_timed_out(self) -> None:
        if self.state is not ReadinessState.RESPONSE_RECEIVED:
            self.state = ReadinessState.TIMED_OUT

    def _fire(self) -> None:
        self.state = ReadinessState.READY
        self._ready.set()

    def _transition(self, expected: ReadinessState, new: ReadinessState) -> None:
        if self.state is not expected:
            raise RuntimeError(f"Invalid readiness transition {self.state} -> {new}")
        self.state = new


class SimpleReadiness(Readiness):
    """Ready exactly when the trigger count reaches ``threshold``."""

    def __init__(
        self, threshold: int, *, report: Callable[[str], None] | None = None
    ) -> None:
        super().__init__(report=report)
        self.threshold = threshold

    def trigger(self) -> bool:
        """
        Count one trigger.

        Returns:
            True if this trigger made the signal ready.
        """
        if self.is_ready:
            return False
        self.attempt += 1
        if self.attempt < self.threshold:
            self._report(f"{self.attempt} < {self.threshold}")
            return False
        self._fire()
        return True


class ProgressReadiness(Readiness):
    """Ready on the ``ordinal``-th ``end`` progress event for ``token``."""

    def __init__(
        self,
        ordinal: int,
        token: str,
        *,
        report: Callable[[str], None] | None = None,
    ) -> None:
        super().__init__(report=report)
        self.ordinal = ordinal
        self.token = token

    def on_progress(self, params: Any) -> bool:
        """
        Inspect one ``$/progress`` notification.

        Returns:
            True if this notification made the signal ready.
        """
        if self.is_ready or not isinstance(params, dict):
            return False
        if str(params.get("token")) != self.token:
            return False
        value = params.get("value")
        if not isinstance(value, dict) or value.get("kind") != "end":
            return False
        self.attempt += 1
        if self.attempt < self.ordinal:
            self._report(f"Progress end {self.attempt} < {self.ordinal} ({self.token})")
            return False
        self._fire()
        return True


def readiness_for(
    start: StartType, *, report: Callable[[str], None] | None = None
) -> SimpleReadiness | ProgressReadiness:
    if isinstance(start, SimpleStart):
        return SimpleReadiness(start.threshold, report=report)
    if isinstance(start, ProgressStart):
        return ProgressReadiness(start.ordinal, start.token, report=report)
    raise TypeError(f"Unsupported start type: {type(start).__name__}")
