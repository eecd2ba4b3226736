"""Test pipeline: provision, plan, drive, capture, normalize, compare."""

from lsprig.harness.compare import Comparison
from lsprig.harness.models import (
    Contains,
    EndState,
    ProgressStart,
    SimpleStart,
    SourceFile,
    TestCase,
)
from lsprig.harness.requests import RequestKind
from lsprig.harness.runner import arun_test, run_test

__all__ = [
    "Comparison",
    "Contains",
    "EndState",
    "ProgressStart",
    "RequestKind",
    "SimpleStart",
    "SourceFile",
    "TestCase",
    "arun_test",
    "run_test",
]
