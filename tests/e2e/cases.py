"""Shared constants for end-to-end cases against the fixture server."""

from __future__ import annotations

import sys
from collections.abc import Callable

from lsprig.harness.models import TestCase

FIXTURE_COMMAND = (sys.executable, "-m", "lsprig.fixture")

SOURCE_TEXT = "fn main() {\nlet x = 1;\n}\n"
OTHER_TEXT = "pub fn other() {}\n"

CaseFactory = Callable[..., TestCase]
