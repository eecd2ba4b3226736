"""Public pipeline: run one test case end to end and judge the outcome."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

from lsprotocol import types
from lsprotocol.converters import get_converter

from lsprig.errors import (
    EmptyResponseError,
    HarnessError,
    NoResultsError,
    ResponseMismatchError,
    SetupError,
    TimeoutExceeded,
)
from lsprig.harness.capture import CaptureKind, capture
from lsprig.harness.compare import (
    Comparison,
    compare,
    compare_contains,
    compare_text,
    deserialize,
)
from lsprig.harness.driver import ProcessDriver
from lsprig.harness.edits import apply_text_edits
from lsprig.harness.executor import RequestExecutor
from lsprig.harness.models import Contains, EndState, TestCase
from lsprig.harness.normalize import empty_variant, normalize
from lsprig.harness.plan import build_plan, lint_plan, write_plan
from lsprig.harness.requests import RequestKind, get_spec
from lsprig.harness.workspace import Workspace
from lsprig.logging import configure_logging, get_logger, mirror_to_file
from lsprig.settings import HarnessSettings

__all__ = [
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

_converter = get_converter()
_logger = get_logger("harness.runner")


def run_test(
    kind: RequestKind | str,
    case: TestCase,
    expected: Any = None,
    settings: HarnessSettings | None = None,
) -> Comparison:
    """
    Run ``case`` for ``kind`` and compare the response with ``expected``.

    Args:
        kind: Request kind under test.
        case: The test case.
        expected: Expected result: an lsprotocol value or plain JSON,
            ``Contains(items)``, ``EndState(text)`` for formatting kinds, or
            None to expect an empty response.
        settings: Harness settings; read from the environment when omitted.

    Returns:
        The passing comparison.

    Raises:
        HarnessError: The subclass describing why the case failed.
    """
    return asyncio.run(arun_test(kind, case, expected, settings))


async def arun_test(
    kind: RequestKind | str,
    case: TestCase,
    expected: Any = None,
    settings: HarnessSettings | None = None,
) -> Comparison:
    """Async variant of ``run_test`` for use inside a running event loop."""
    kind = RequestKind(kind)
    if settings is None:
        settings = HarnessSettings.from_env()
    if settings.log_level:
        configure_logging(level=settings.log_level)

    case.validate()
    if isinstance(expected, EndState) and not get_spec(kind).supports_end_state:
        raise SetupError(
            f"End-state expectations are not supported for {kind.value}",
            test_id=case.test_id,
        )

    timeout = case.timeout if case.timeout is not None else settings.timeout
    retention = case.retention if case.retention is not None else settings.retention
    workspace = Workspace.provision(case, settings.workspace_dir)
    extra = {"test_id": case.test_id}
    passed = False
    try:
        with mirror_to_file(workspace.log_path, test_id=case.test_id):
            _logger.info("Running %s in %s", kind.value, workspace.root, extra=extra)
            plan = build_plan(kind, case, workspace, timeout=timeout)
            write_plan(plan, workspace)
            lint_plan(plan)

            driver = ProcessDriver(
                plan.server,
                cwd=workspace.src_dir,
                log_path=workspace.log_path,
                test_id=case.test_id,
                workspace=workspace.root,
            )
            await driver.start()
            try:
                await RequestExecutor(plan, workspace, driver).execute()
            finally:
                await driver.terminate()

            comparison = _judge(kind, case, expected, workspace, timeout)
            for warning in comparison.warnings:
                workspace.report_log(f"WARNING: {warning}")
            _logger.info("%s passed", kind.value, extra=extra)
        passed = True
        return comparison
    except HarnessError as e:
        if e.test_id is None:
            e.test_id = case.test_id
        if e.workspace is None:
            e.workspace = workspace.root
        _logger.info("%s failed: %s", kind.value, type(e).__name__, extra=extra)
        raise
    finally:
        workspace.finish(passed=passed, retention=retention)


def _judge(
    kind: RequestKind,
    case: TestCase,
    expected: Any,
    workspace: Workspace,
    timeout: float,
) -> Comparison:
    captured = capture(workspace)

    if captured.kind is CaptureKind.TIMEOUT:
        raise TimeoutExceeded(timeout, errors=captured.errors.strip())

    if captured.kind is CaptureKind.NONE:
        message = "No results, empty or timeout artifact was produced"
        if captured.errors:
            message = f"{message}\nRecorded errors:\n{captured.errors.strip()}"
        raise NoResultsError(message)

    if captured.kind is CaptureKind.EMPTY:
        return _judge_empty(kind, case, expected)

    payload = normalize(captured.payload, workspace, kind, collapse=case.collapse_escapes)

    if expected is None:
        variant = empty_variant(payload.value, kind)
        if variant is not None:
            warning = f"Expected an empty response, got {variant}; treating it as empty"
            _logger.warning(warning)
            return Comparison(True, actual=payload.value, warnings=(warning,))
        raise ResponseMismatchError(
            kind.value,
            path="",
            expected=None,
            actual=payload.value,
            rendered=f"Expected an empty response, got:\n{payload.value!r}",
        )

    if isinstance(expected, EndState):
        edits = deserialize(kind, payload) or []
        try:
            end_state = apply_text_edits(case.source.contents, edits)
        except ValueError as e:
            raise ResponseMismatchError(
                kind.value,
                path="<document>",
                expected=expected.text,
                actual=payload.value,
                rendered=f"Cannot apply the returned edits: {e}\n{payload.value!r}",
            ) from e
        comparison = compare_text(expected.text, end_state)
    elif isinstance(expected, Contains):
        comparison = compare_contains(kind, expected, payload)
    else:
        comparison = compare(kind, expected, payload)
    return _raise_if_failed(kind, comparison)


def _judge_empty(kind: RequestKind, case: TestCase, expected: Any) -> Comparison:
    if expected is None:
        return Comparison(True)
    if isinstance(expected, EndState):
        return _raise_if_failed(kind, compare_text(expected.text, case.source.contents))
    if isinstance(expected, Contains):
        if not expected.items:
            return Comparison(True)
        raise EmptyResponseError(list(expected.items))
    if empty_variant(_converter.unstructure(expected), kind) is not None:
        return Comparison(True)
    raise EmptyResponseError(expected)


def _raise_if_failed(kind: RequestKind, comparison: Comparison) -> Comparison:
    if not comparison.passed:
        raise ResponseMismatchError(
            kind.value,
            path=comparison.path,
            expected=comparison.expected,
            actual=comparison.actual,
            rendered=comparison.rendered,
        )
    return comparison


# Convenience wrappers


def _check(
    kind: RequestKind,
    case: TestCase,
    expected: Any,
    settings: HarnessSettings | None = None,
    **params: Any,
) -> Comparison:
    supplied = {name for name, value in params.items() if value is not None}
    supplied.update(case.params)
    if (
        get_spec(kind).requires_cursor
        and case.cursor is None
        and not supplied & {"position", "positions"}
    ):
        raise SetupError(f"{kind.value} requires a cursor position", test_id=case.test_id)
    if params:
        case = case.with_params(**{k: v for k, v in params.items() if v is not None})
    return run_test(kind, case, expected, settings)


def check_hover(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.HOVER, case, expected, settings)


def check_completion(
    case: TestCase,
    expected: Any,
    settings: HarnessSettings | None = None,
    *,
    context: types.CompletionContext | Mapping[str, Any] | None = None,
) -> Comparison:
    return _check(RequestKind.COMPLETION, case, expected, settings, context=context)


def check_completion_resolve(
    case: TestCase,
    item: types.CompletionItem | Mapping[str, Any],
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(
        RequestKind.COMPLETION_RESOLVE, case, expected, settings, completion_item=item
    )


def check_definition(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.DEFINITION, case, expected, settings)


def check_declaration(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.DECLARATION, case, expected, settings)


def check_type_definition(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.TYPE_DEFINITION, case, expected, settings)


def check_implementation(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.IMPLEMENTATION, case, expected, settings)


def check_references(
    case: TestCase,
    include_declaration: bool,
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(
        RequestKind.REFERENCES,
        case,
        expected,
        settings,
        include_declaration=include_declaration,
    )


def check_rename(
    case: TestCase,
    new_name: str,
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(RequestKind.RENAME, case, expected, settings, new_name=new_name)


def check_prepare_rename(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.PREPARE_RENAME, case, expected, settings)


def check_document_highlight(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.DOCUMENT_HIGHLIGHT, case, expected, settings)


def check_document_symbol(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.DOCUMENT_SYMBOL, case, expected, settings)


def check_folding_range(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.FOLDING_RANGE, case, expected, settings)


def check_selection_range(
    case: TestCase,
    expected: Any,
    settings: HarnessSettings | None = None,
    *,
    positions: Sequence[types.Position] | None = None,
) -> Comparison:
    return _check(
        RequestKind.SELECTION_RANGE,
        case,
        expected,
        settings,
        positions=list(positions) if positions is not None else None,
    )


def check_formatting(
    case: TestCase,
    expected: Any,
    options: types.FormattingOptions | Mapping[str, Any] | None = None,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(RequestKind.FORMATTING, case, expected, settings, options=options)


def check_range_formatting(
    case: TestCase,
    range: types.Range,
    expected: Any,
    options: types.FormattingOptions | Mapping[str, Any] | None = None,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(
        RequestKind.RANGE_FORMATTING,
        case,
        expected,
        settings,
        range=range,
        options=options,
    )


def check_diagnostics(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    """Check the diagnostics the server publishes for the primary file."""
    return _check(RequestKind.PUBLISH_DIAGNOSTICS, case, expected, settings)


def check_document_diagnostic(
    case: TestCase,
    expected: Any,
    settings: HarnessSettings | None = None,
    *,
    identifier: str | None = None,
    previous_result_id: str | None = None,
) -> Comparison:
    return _check(
        RequestKind.DIAGNOSTIC,
        case,
        expected,
        settings,
        identifier=identifier,
        previous_result_id=previous_result_id,
    )


def check_semantic_tokens_full(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.SEMANTIC_TOKENS_FULL, case, expected, settings)


def check_semantic_tokens_full_delta(
    case: TestCase, expected: Any, settings: HarnessSettings | None = None
) -> Comparison:
    """Fetch full tokens first, then check the delta against their resultId."""
    return _check(RequestKind.SEMANTIC_TOKENS_FULL_DELTA, case, expected, settings)


def check_signature_help(
    case: TestCase,
    expected: Any,
    settings: HarnessSettings | None = None,
    *,
    context: types.SignatureHelpContext | Mapping[str, Any] | None = None,
) -> Comparison:
    return _check(RequestKind.SIGNATURE_HELP, case, expected, settings, context=context)


def check_code_action(
    case: TestCase,
    range: types.Range,
    expected: Any,
    settings: HarnessSettings | None = None,
    *,
    context: types.CodeActionContext | Mapping[str, Any] | None = None,
) -> Comparison:
    return _check(
        RequestKind.CODE_ACTION, case, expected, settings, range=range, context=context
    )


def check_code_lens(case: TestCase, expected: Any, settings: HarnessSettings | None = None) -> Comparison:
    return _check(RequestKind.CODE_LENS, case, expected, settings)


def check_inlay_hint(
    case: TestCase,
    range: types.Range,
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(RequestKind.INLAY_HINT, case, expected, settings, range=range)


def check_prepare_call_hierarchy(
    case: TestCase, expected: Any, settings: HarnessSettings | None = None
) -> Comparison:
    return _check(RequestKind.PREPARE_CALL_HIERARCHY, case, expected, settings)


def check_incoming_calls(
    case: TestCase,
    item: types.CallHierarchyItem | Mapping[str, Any],
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(RequestKind.INCOMING_CALLS, case, expected, settings, item=item)


def check_outgoing_calls(
    case: TestCase,
    item: types.CallHierarchyItem | Mapping[str, Any],
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(RequestKind.OUTGOING_CALLS, case, expected, settings, item=item)


def check_execute_command(
    case: TestCase,
    command: str,
    expected: Any,
    settings: HarnessSettings | None = None,
    *,
    arguments: Sequence[Any] | None = None,
) -> Comparison:
    return _check(
        RequestKind.WORKSPACE_EXECUTE_COMMAND,
        case,
        expected,
        settings,
        command=command,
        arguments=list(arguments) if arguments is not None else None,
    )


def check_workspace_symbol(
    case: TestCase,
    query: str,
    expected: Any,
    settings: HarnessSettings | None = None,
) -> Comparison:
    return _check(RequestKind.WORKSPACE_SYMBOL, case, expected, settings, query=query)
