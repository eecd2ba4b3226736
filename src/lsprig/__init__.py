"""lsprig: integration tests for Language Server Protocol servers.

Describe a ``TestCase`` (server command, source files, cursor, start-up
strategy), pick a ``RequestKind`` and an expected response, and call
``run_test`` or one of the ``check_*`` wrappers. A failure raises a
``HarnessError`` subclass naming the test and its retained workspace.
"""

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
from lsprig.harness.runner import (
    arun_test,
    check_code_action,
    check_code_lens,
    check_completion,
    check_completion_resolve,
    check_declaration,
    check_definition,
    check_diagnostics,
    check_document_diagnostic,
    check_document_highlight,
    check_document_symbol,
    check_execute_command,
    check_folding_range,
    check_formatting,
    check_hover,
    check_implementation,
    check_incoming_calls,
    check_inlay_hint,
    check_outgoing_calls,
    check_prepare_call_hierarchy,
    check_prepare_rename,
    check_range_formatting,
    check_references,
    check_rename,
    check_selection_range,
    check_semantic_tokens_full,
    check_semantic_tokens_full_delta,
    check_signature_help,
    check_type_definition,
    check_workspace_symbol,
    run_test,
)
from lsprig.settings import HarnessSettings, Retention

__version__ = "0.1.0"

__all__ = [
    "Comparison",
    "Contains",
    "DeserializeError",
    "EmptyResponseError",
    "EndState",
    "HarnessError",
    "HarnessSettings",
    "NoResultsError",
    "ProcessLaunchError",
    "ProgressStart",
    "RequestKind",
    "ResponseMismatchError",
    "Retention",
    "ServerError",
    "SetupError",
    "SimpleStart",
    "SourceFile",
    "TestCase",
    "TimeoutExceeded",
    "WorkspaceIOError",
    "arun_test",
    "check_code_action",
    "check_code_lens",
    "check_completion",
    "check_completion_resolve",
    "check_declaration",
    "check_definition",
    "check_diagnostics",
    "check_document_diagnostic",
    "check_document_highlight",
    "check_document_symbol",
    "check_execute_command",
    "check_folding_range",
    "check_formatting",
    "check_hover",
    "check_implementation",
    "check_incoming_calls",
    "check_inlay_hint",
    "check_outgoing_calls",
    "check_prepare_call_hierarchy",
    "check_prepare_rename",
    "check_range_formatting",
    "check_references",
    "check_rename",
    "check_selection_range",
    "check_semantic_tokens_full",
    "check_semantic_tokens_full_delta",
    "check_signature_help",
    "check_type_definition",
    "check_workspace_symbol",
    "run_test",
]
