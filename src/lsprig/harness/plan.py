"""Rendering and linting the request plan for one test run.

The plan is the complete, inspectable description of what the executor will
do: which server to start, how to initialize it, which documents to open,
when the server counts as ready and which request to send. It is written to
the workspace as ``control.json`` before the server is launched.
"""

from __future__ import annotations

import dataclasses
import os
import re
from typing import Any

from lsprotocol import types
from lsprotocol.converters import get_converter

from lsprig.errors import SetupError
from lsprig.harness.models import (
    ProgressStart,
    StartType,
    TestCase,
    language_id_for,
)
from lsprig.harness.normalize import rewrite_uris
from lsprig.harness.requests import (
    OMIT,
    PLACEHOLDER_RE,
    RequestHook,
    RequestKind,
    get_spec,
)
from lsprig.harness.workspace import Workspace
from lsprig.logging import get_logger

__all__ = [
    "CLIENT_NAME",
    "RequestPlan",
    "build_capabilities",
    "build_plan",
    "lint_plan",
    "write_plan",
]

CLIENT_NAME = "lsprig"

_UNRESOLVED_RE = re.compile(r"\$\{([A-Za-z_]+)\}")

_MARKDOWN = types.MarkupKind.Markdown.value
_PLAINTEXT = types.MarkupKind.PlainText.value

_converter = get_converter()
_logger = get_logger("harness.plan")


@dataclasses.dataclass(frozen=True)
class RequestPlan:
    """A rendered request plan."""

    test_id: str
    kind: RequestKind
    params: Any
    start: StartType
    timeout: float
    server: tuple[str, ...]
    cwd: str
    initialize_params: dict[str, Any]
    documents: tuple[dict[str, Any], ...]
    artifacts: dict[str, str]

    @property
    def method(self) -> str:
        return self.kind.value

    @property
    def hook(self) -> RequestHook:
        return get_spec(self.kind).hook

    @property
    def base_method(self) -> str | None:
        return get_spec(self.kind).base_method

    @property
    def primary_uri(self) -> str:
        return self.documents[0]["uri"]

    def to_json(self) -> dict[str, Any]:
        if isinstance(self.start, ProgressStart):
            start = {
                "type": "progress",
                "ordinal": self.start.ordinal,
                "token": self.start.token,
            }
        else:
            start = {"type": "simple", "threshold": self.start.threshold}
        return {
            "testId": self.test_id,
            "method": self.method,
            "hook": self.hook.value,
            "baseMethod": self.base_method,
            "params": self.params,
            "start": start,
            "timeout": self.timeout,
            "server": list(self.server),
            "cwd": self.cwd,
            "initializeParams": self.initialize_params,
            "documents": [
                {key: value for key, value in doc.items() if key != "text"}
                for doc in self.documents
            ],
            "artifacts": self.artifacts,
        }


def build_capabilities(commands: tuple[str, ...] | list[str] = ()) -> dict[str, Any]:
    """
    Client capabilities advertised in ``initialize``.

    Declared as protocol JSON and validated by structuring them into
    ``types.ClientCapabilities``.
    """
    raw: dict[str, Any] = {
        "workspace": {
            "applyEdit": True,
            "workspaceEdit": {"documentChanges": True},
            "configuration": True,
            "workspaceFolders": True,
            "symbol": {"resolveSupport": {"properties": ["location.range"]}},
            "executeCommand": {"dynamicRegistration": False},
            "fileOperations": {
                "willCreate": True,
                "willRename": True,
                "willDelete": True,
            },
            "diagnostics": {"refreshSupport": False},
        },
        "textDocument": {
            "synchronization": {"dynamicRegistration": False},
            "hover": {"contentFormat": [_MARKDOWN, _PLAINTEXT]},
            "completion": {
                "completionItem": {
                    "snippetSupport": True,
                    "documentationFormat": [_MARKDOWN, _PLAINTEXT],
                    "resolveSupport": {
                        "properties": ["documentation", "detail", "additionalTextEdits"]
                    },
                },
                "contextSupport": True,
            },
            "signatureHelp": {"contextSupport": True},
            "definition": {"linkSupport": True},
            "declaration": {"linkSupport": True},
            "typeDefinition": {"linkSupport": True},
            "implementation": {"linkSupport": True},
            "documentSymbol": {"hierarchicalDocumentSymbolSupport": True},
            "codeAction": {"resolveSupport": {"properties": ["edit"]}},
            "codeLens": {},
            "documentLink": {"tooltipSupport": True},
            "rename": {"prepareSupport": True},
            "publishDiagnostics": {"relatedInformation": True},
            "foldingRange": {},
            "selectionRange": {},
            "callHierarchy": {},
            "typeHierarchy": {},
            "semanticTokens": {
                "requests": {"range": True, "full": {"delta": True}},
                "tokenTypes": [t.value for t in types.SemanticTokenTypes],
                "tokenModifiers": [m.value for m in types.SemanticTokenModifiers],
                "formats": [types.TokenFormat.Relative.value],
            },
            "linkedEditingRange": {},
            "moniker": {},
            "inlayHint": {"resolveSupport": {"properties": ["tooltip"]}},
            "diagnostic": {"relatedDocumentSupport": True},
        },
        "window": {"workDoneProgress": True},
        "general": {"positionEncodings": [types.PositionEncodingKind.Utf16.value]},
        "experimental": {"commands": {"commands": list(commands)}},
    }
    capabilities = _converter.structure(raw, types.ClientCapabilities)
    return _converter.unstructure(capabilities)


def _to_json(value: Any) -> Any:
    return _converter.unstructure(value)


def _absolutize(workspace: Workspace, value: Any) -> Any:
    """Expand relative ``uri``-like fields in caller values to workspace URIs."""

    def expand(uri: str) -> str | None:
        if ":" in uri.split("/", 1)[0]:
            return None
        return workspace.uri_for(uri)

    return rewrite_uris(value, expand)


def _initialize_params(case: TestCase, workspace: Workspace) -> dict[str, Any]:
    raw = {
        "processId": os.getpid(),
        "clientInfo": {"name": CLIENT_NAME},
        "rootUri": workspace.root_uri,
        "rootPath": str(workspace.src_dir),
        "capabilities": build_capabilities(case.commands),
        "workspaceFolders": [
            {"uri": workspace.root_uri, "name": workspace.src_dir.name}
        ],
    }
    return _converter.unstructure(_converter.structure(raw, types.InitializeParams))


def _render(template: Any, values: dict[str, Any]) -> Any:
    if isinstance(template, str):
        match = PLACEHOLDER_RE.match(template)
        if match and match.group(1) in values:
            return values[match.group(1)]
        return template
    if isinstance(template, dict):
        rendered: dict[str, Any] = {}
        for key, value in template.items():
            result = _render(value, values)
            if result is not OMIT:
                rendered[key] = result
        return rendered
    if isinstance(template, (list, tuple)):
        return [_render(value, values) for value in template]
    return template


def build_plan(
    kind: RequestKind | str,
    case: TestCase,
    workspace: Workspace,
    *,
    timeout: float,
) -> RequestPlan:
    """
    Render the request plan for ``kind`` against a provisioned workspace.

    Args:
        kind: Request kind under test.
        case: The test case.
        workspace: The case's provisioned workspace.
        timeout: Effective timeout in seconds.

    Returns:
        The rendered plan. Call ``lint_plan`` before executing it.

    Raises:
        SetupError: If the kind needs a cursor and the case has none.
    """
    spec = get_spec(kind)
    primary_uri = workspace.uri_for(case.source.path)

    caller = {
        name: _absolutize(workspace, _to_json(value))
        for name, value in case.params.items()
    }
    builtins: dict[str, Any] = {
        "text_document": {"uri": primary_uri},
        "uri": primary_uri,
    }
    if case.cursor is not None:
        position = _to_json(case.cursor)
        builtins["position"] = position
        builtins["positions"] = [position]

    cursor_names = spec.placeholders & {"position", "positions"}
    if spec.requires_cursor and not cursor_names & {*builtins, *caller}:
        raise SetupError(
            f"{spec.method} requires a cursor position", test_id=case.test_id
        )

    values = {**spec.defaults, **builtins, **caller}
    params = _render(spec.template, values)
    if spec.hook is RequestHook.RESOLVE and isinstance(params, dict):
        dropped = sorted(set(params) - set(spec.resolve_fields))
        if dropped:
            _logger.debug(
                "Dropping fields not re-submitted by %s: %s",
                spec.method,
                ", ".join(dropped),
                extra={"test_id": case.test_id},
            )
        params = {
            field: params[field] for field in spec.resolve_fields if field in params
        }

    documents = [(case.source, case.resolved_language_id)]
    if case.open_all:
        documents.extend((f, language_id_for(f.path)) for f in case.other_files)

    initialize_params = _initialize_params(case, workspace)

    plan = RequestPlan(
        test_id=case.test_id,
        kind=spec.kind,
        params=params,
        start=case.start,
        timeout=timeout,
        server=tuple(case.server),
        cwd=str(workspace.src_dir),
        initialize_params=initialize_params,
        documents=tuple(
            {
                "uri": workspace.uri_for(source.path),
                "languageId": language_id,
                "version": 1,
                "text": source.contents,
            }
            for source, language_id in documents
        ),
        artifacts={
            "results": str(workspace.results_path),
            "empty": str(workspace.empty_path),
            "timeout": str(workspace.timeout_path),
            "error": str(workspace.error_path),
            "log": str(workspace.log_path),
        },
    )
    _logger.debug(
        "Rendered %s plan", spec.method, extra={"test_id": case.test_id}
    )
    return plan


def _find_unresolved(value: Any) -> list[str]:
    if isinstance(value, str):
        return _UNRESOLVED_RE.findall(value)
    if isinstance(value, dict):
        found: list[str] = []
        for item in value.values():
            found.extend(_find_unresolved(item))
        return found
    if isinstance(value, list):
        found = []
        for item in value:
            found.extend(_find_unresolved(item))
        return found
    return []


def lint_plan(plan: RequestPlan) -> None:
    """
    Reject plans that still contain placeholders.

    Raises:
        SetupError: Naming every unresolved placeholder.
    """
    unresolved = sorted(set(_find_unresolved(plan.params)))
    if unresolved:
        names = ", ".join(f"${{{name}}}" for name in unresolved)
        raise SetupError(
            f"Unresolved placeholder(s) in {plan.method} parameters: {names} "
            f"(pass them via TestCase.params)",
            test_id=plan.test_id,
        )


def write_plan(plan: RequestPlan, workspace: Workspace) -> None:
    """Persist the plan and the advertised capabilities into the workspace."""
    workspace.write_json(workspace.plan_path, plan.to_json())
    workspace.write_json(
        workspace.capabilities_path, plan.initialize_params.get("capabilities", {})
    )
