"""Canned responses served by the fixture server.

Every builder takes a ``uri_for`` function mapping a path relative to the
workspace ``src/`` directory to the URI to embed. The server passes one that
produces absolute ``file://`` URIs; tests pass ``relative_uri`` (the
identity) to build the values they expect back after normalization.

``response_num`` 0 is always the empty variant of the method. A number with
no entry yields ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from lsprotocol import types

__all__ = [
    "COMMAND_NAME",
    "DIAGNOSTIC_IDENTIFIER",
    "PROGRESS_TOKEN",
    "SOURCE_PATH",
    "UriFor",
    "get_diagnostics_response",
    "get_response",
    "relative_uri",
    "supported_methods",
]

UriFor = Callable[[str], str]

SOURCE_PATH = "main.rs"
OTHER_PATH = "src/other.rs"
PROGRESS_TOKEN = "lsprig/fixture"
COMMAND_NAME = "lsprig.fixture.run"
DIAGNOSTIC_IDENTIFIER = "lsprig-fixture"
TOKEN_TYPES = ["namespace", "type", "function", "variable"]


def relative_uri(path: str) -> str:
    return path


def _pos(line: int, character: int) -> types.Position:
    return types.Position(line=line, character=character)


def _range(a: int, b: int, c: int, d: int) -> types.Range:
    return types.Range(start=_pos(a, b), end=_pos(c, d))


def _location(uri_for: UriFor, path: str, *coords: int) -> types.Location:
    return types.Location(uri=uri_for(path), range=_range(*coords))


def _edits(count: int) -> list[types.TextEdit]:
    spans = [(1, 2, 3, 4), (5, 6, 7, 8), (9, 10, 11, 12)]
    return [
        types.TextEdit(range=_range(*spans[i]), new_text=f"new_text {i + 1}")
        for i in range(count)
    ]


def _hover(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.Hover(
            range=_range(1, 2, 3, 4),
            contents=types.MarkupContent(kind=types.MarkupKind.Markdown, value="text"),
        ),
        2: types.Hover(
            range=_range(1, 2, 3, 4),
            contents=types.MarkupContent(kind=types.MarkupKind.PlainText, value="text"),
        ),
        3: types.Hover(contents="raw string contents"),
        4: types.Hover(
            contents=types.MarkupContent(
                kind=types.MarkupKind.Markdown, value="path\\\\to\\\\file"
            ),
        ),
    }


def _locations(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [_location(uri_for, SOURCE_PATH, 1, 2, 3, 4)],
        2: [
            _location(uri_for, SOURCE_PATH, 1, 2, 3, 4),
            _location(uri_for, SOURCE_PATH, 5, 6, 7, 8),
        ],
        3: [
            _location(uri_for, SOURCE_PATH, 1, 2, 3, 4),
            _location(uri_for, SOURCE_PATH, 5, 6, 7, 8),
            _location(uri_for, OTHER_PATH, 9, 10, 11, 12),
        ],
    }


def _goto(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: _location(uri_for, SOURCE_PATH, 1, 2, 3, 4),
        2: [
            _location(uri_for, SOURCE_PATH, 1, 2, 3, 4),
            _location(uri_for, OTHER_PATH, 5, 6, 7, 8),
        ],
        3: [
            types.LocationLink(
                target_uri=uri_for(OTHER_PATH),
                target_range=_range(5, 0, 9, 1),
                target_selection_range=_range(5, 3, 5, 7),
                origin_selection_range=_range(1, 2, 1, 6),
            )
        ],
    }


def _formatting(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: _edits(1),
        2: _edits(2),
        3: _edits(3),
        4: [
            types.TextEdit(range=_range(0, 3, 0, 7), new_text="renamed"),
            types.TextEdit(range=_range(1, 0, 1, 0), new_text="    "),
        ],
    }


def _rename(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.WorkspaceEdit(
            changes={uri_for(SOURCE_PATH): _edits(1)},
        ),
        2: types.WorkspaceEdit(
            changes={uri_for(SOURCE_PATH): _edits(2), uri_for(OTHER_PATH): _edits(1)},
        ),
        3: types.WorkspaceEdit(
            document_changes=[
                types.TextDocumentEdit(
                    text_document=types.OptionalVersionedTextDocumentIdentifier(
                        uri=uri_for(SOURCE_PATH), version=1
                    ),
                    edits=_edits(1),
                )
            ]
        ),
        4: types.WorkspaceEdit(changes={}),
    }


def _completion_items() -> list[types.CompletionItem]:
    return [
        types.CompletionItem(
            label="println!",
            kind=types.CompletionItemKind.Function,
            detail="macro",
            documentation=types.MarkupContent(
                kind=types.MarkupKind.Markdown, value="Prints to stdout"
            ),
        ),
        types.CompletionItem(label="print!", kind=types.CompletionItemKind.Function),
    ]


def _completion(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: types.CompletionList(is_incomplete=False, items=_completion_items()),
        2: _completion_items(),
        3: types.CompletionList(is_incomplete=False, items=[]),
    }


def _completion_resolve(uri_for: UriFor) -> dict[int, Any]:
    item = _completion_items()[0]
    return {
        0: None,
        1: types.CompletionItem(
            label=item.label,
            kind=item.kind,
            detail="macro_rules! println",
            documentation=item.documentation,
            insert_text="println!(\"$1\")",
            insert_text_format=types.InsertTextFormat.Snippet,
        ),
    }


def _diagnostics(uri_for: UriFor) -> dict[int, list[types.Diagnostic]]:
    return {
        0: [],
        1: [
            types.Diagnostic(
                range=_range(1, 2, 3, 4),
                message="unused variable",
                severity=types.DiagnosticSeverity.Warning,
                source="lsprig-fixture",
                code="W001",
            )
        ],
        2: [
            types.Diagnostic(
                range=_range(1, 2, 3, 4),
                message="unused variable",
                severity=types.DiagnosticSeverity.Warning,
            ),
            types.Diagnostic(
                range=_range(5, 6, 7, 8),
                message="cannot find file C:\\\\tmp",
                severity=types.DiagnosticSeverity.Error,
                related_information=[
                    types.DiagnosticRelatedInformation(
                        location=_location(uri_for, OTHER_PATH, 0, 0, 0, 4),
                        message="declared here",
                    )
                ],
            ),
        ],
    }


def _document_diagnostic(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: types.RelatedFullDocumentDiagnosticReport(items=[]),
        1: types.RelatedFullDocumentDiagnosticReport(
            items=_diagnostics(uri_for)[1], result_id="1"
        ),
        2: types.RelatedUnchangedDocumentDiagnosticReport(result_id="1"),
    }


def _workspace_diagnostic(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: types.WorkspaceDiagnosticReport(items=[]),
        1: types.WorkspaceDiagnosticReport(
            items=[
                types.WorkspaceFullDocumentDiagnosticReport(
                    uri=uri_for(SOURCE_PATH),
                    items=_diagnostics(uri_for)[1],
                    version=1,
                )
            ]
        ),
    }


def _document_symbol(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.DocumentSymbol(
                name="main",
                kind=types.SymbolKind.Function,
                range=_range(0, 0, 2, 1),
                selection_range=_range(0, 3, 0, 7),
                children=[
                    types.DocumentSymbol(
                        name="x",
                        kind=types.SymbolKind.Variable,
                        range=_range(1, 4, 1, 14),
                        selection_range=_range(1, 8, 1, 9),
                    )
                ],
            )
        ],
        2: [
            types.SymbolInformation(
                name="main",
                kind=types.SymbolKind.Function,
                location=_location(uri_for, SOURCE_PATH, 0, 0, 2, 1),
            )
        ],
    }


def _workspace_symbol(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.WorkspaceSymbol(
                name="main",
                kind=types.SymbolKind.Function,
                location=_location(uri_for, SOURCE_PATH, 0, 0, 2, 1),
            )
        ],
    }


def _workspace_symbol_resolve(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.WorkspaceSymbol(
            name="main",
            kind=types.SymbolKind.Function,
            location=_location(uri_for, SOURCE_PATH, 0, 3, 0, 7),
            container_name="crate",
        ),
    }


def _document_highlight(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.DocumentHighlight(
                range=_range(1, 2, 3, 4), kind=types.DocumentHighlightKind.Read
            ),
            types.DocumentHighlight(
                range=_range(5, 6, 7, 8), kind=types.DocumentHighlightKind.Write
            ),
        ],
    }


def _document_link(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.DocumentLink(
                range=_range(1, 2, 3, 4), target=uri_for(OTHER_PATH), tooltip="other"
            ),
            types.DocumentLink(range=_range(5, 6, 7, 8), data={"id": 7}),
        ],
    }


def _document_link_resolve(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.DocumentLink(
            range=_range(5, 6, 7, 8), target="https://example.com/docs", data={"id": 7}
        ),
    }


def _code_action(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.CodeAction(
                title="Remove unused variable",
                kind=types.CodeActionKind.QuickFix,
                is_preferred=True,
                edit=types.WorkspaceEdit(changes={uri_for(SOURCE_PATH): _edits(1)}),
            ),
            types.Command(title="Run fixture command", command=COMMAND_NAME),
        ],
    }


def _code_action_resolve(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.CodeAction(
            title="Remove unused variable",
            kind=types.CodeActionKind.QuickFix,
            edit=types.WorkspaceEdit(changes={uri_for(SOURCE_PATH): _edits(2)}),
        ),
    }


def _code_lens(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.CodeLens(
                range=_range(0, 0, 0, 7),
                command=types.Command(title="Run", command=COMMAND_NAME, arguments=[1]),
            ),
            types.CodeLens(range=_range(4, 0, 4, 7), data={"lens": 2}),
        ],
    }


def _code_lens_resolve(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.CodeLens(
            range=_range(4, 0, 4, 7),
            command=types.Command(title="2 references", command=COMMAND_NAME),
            data={"lens": 2},
        ),
    }


def _document_color(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.ColorInformation(
                range=_range(1, 2, 1, 9),
                color=types.Color(red=1.0, green=0.5, blue=0.0, alpha=1.0),
            )
        ],
    }


def _color_presentation(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.ColorPresentation(
                label="#ff8000",
                text_edit=types.TextEdit(range=_range(1, 2, 1, 9), new_text="#ff8000"),
            )
        ],
    }


def _folding_range(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.FoldingRange(start_line=0, end_line=2),
            types.FoldingRange(
                start_line=4,
                end_line=8,
                start_character=10,
                kind=types.FoldingRangeKind.Region,
            ),
        ],
    }


def _selection_range(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.SelectionRange(
                range=_range(1, 8, 1, 9),
                parent=types.SelectionRange(range=_range(1, 4, 1, 14)),
            )
        ],
    }


def _call_hierarchy_item(uri_for: UriFor, name: str, line: int) -> types.CallHierarchyItem:
    return types.CallHierarchyItem(
        name=name,
        kind=types.SymbolKind.Function,
        uri=uri_for(SOURCE_PATH),
        range=_range(line, 0, line + 2, 1),
        selection_range=_range(line, 3, line, 3 + len(name)),
    )


def _prepare_call_hierarchy(uri_for: UriFor) -> dict[int, Any]:
    return {0: [], 1: [_call_hierarchy_item(uri_for, "main", 0)]}


def _incoming_calls(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.CallHierarchyIncomingCall(
                from_=_call_hierarchy_item(uri_for, "caller", 4),
                from_ranges=[_range(5, 4, 5, 8)],
            )
        ],
    }


def _outgoing_calls(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.CallHierarchyOutgoingCall(
                to=_call_hierarchy_item(uri_for, "callee", 8),
                from_ranges=[_range(1, 4, 1, 10)],
            )
        ],
    }


def _prepare_type_hierarchy(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.TypeHierarchyItem(
                name="Shape",
                kind=types.SymbolKind.Struct,
                uri=uri_for(SOURCE_PATH),
                range=_range(0, 0, 3, 1),
                selection_range=_range(0, 7, 0, 12),
            )
        ],
    }


def _inlay_hint(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.InlayHint(
                position=_pos(1, 9),
                label=": i32",
                kind=types.InlayHintKind.Type,
                padding_left=False,
            ),
            types.InlayHint(
                position=_pos(2, 8),
                label=[types.InlayHintLabelPart(value="count:", tooltip="parameter")],
                kind=types.InlayHintKind.Parameter,
            ),
        ],
    }


def _linked_editing_range(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.LinkedEditingRanges(
            ranges=[_range(1, 1, 1, 4), _range(3, 2, 3, 5)], word_pattern="[a-z]+"
        ),
    }


def _moniker(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: [],
        1: [
            types.Moniker(
                scheme="rust",
                identifier="crate::main",
                unique=types.UniquenessLevel.Project,
                kind=types.MonikerKind.Export,
            )
        ],
    }


def _prepare_rename(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: _range(1, 8, 1, 9),
        2: types.PrepareRenamePlaceholder(range=_range(1, 8, 1, 9), placeholder="x"),
        3: types.PrepareRenameDefaultBehavior(default_behavior=True),
    }


def _semantic_tokens_full(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.SemanticTokens(data=[0, 3, 4, 2, 0, 1, 8, 1, 3, 0], result_id="1"),
        2: types.SemanticTokens(data=[0, 3, 4, 2, 0]),
    }


def _semantic_tokens_delta(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.SemanticTokensDelta(
            edits=[types.SemanticTokensEdit(start=5, delete_count=5, data=[1, 4, 2, 3, 0])],
            result_id="2",
        ),
        2: types.SemanticTokens(data=[0, 3, 4, 2, 0], result_id="2"),
    }


def _semantic_tokens_range(uri_for: UriFor) -> dict[int, Any]:
    return {0: None, 1: types.SemanticTokens(data=[1, 8, 1, 3, 0])}


def _signature_help(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.SignatureHelp(
            signatures=[
                types.SignatureInformation(
                    label="fn add(a: i32, b: i32) -> i32",
                    documentation=types.MarkupContent(
                        kind=types.MarkupKind.Markdown, value="Adds two numbers"
                    ),
                    parameters=[
                        types.ParameterInformation(label="a: i32"),
                        types.ParameterInformation(label="b: i32"),
                    ],
                )
            ],
            active_signature=0,
            active_parameter=1,
        ),
    }


def _execute_command(uri_for: UriFor) -> dict[int, Any]:
    return {0: None, 1: {"ran": COMMAND_NAME, "ok": True}}


def _file_operation(uri_for: UriFor) -> dict[int, Any]:
    return {
        0: None,
        1: types.WorkspaceEdit(changes={uri_for(SOURCE_PATH): _edits(1)}),
    }


_BUILDERS: dict[str, Callable[[UriFor], dict[int, Any]]] = {
    types.CALL_HIERARCHY_INCOMING_CALLS: _incoming_calls,
    types.CALL_HIERARCHY_OUTGOING_CALLS: _outgoing_calls,
    types.CODE_ACTION_RESOLVE: _code_action_resolve,
    types.CODE_LENS_RESOLVE: _code_lens_resolve,
    types.COMPLETION_ITEM_RESOLVE: _completion_resolve,
    types.DOCUMENT_LINK_RESOLVE: _document_link_resolve,
    types.TEXT_DOCUMENT_CODE_ACTION: _code_action,
    types.TEXT_DOCUMENT_CODE_LENS: _code_lens,
    types.TEXT_DOCUMENT_COLOR_PRESENTATION: _color_presentation,
    types.TEXT_DOCUMENT_COMPLETION: _completion,
    types.TEXT_DOCUMENT_DECLARATION: _goto,
    types.TEXT_DOCUMENT_DEFINITION: _goto,
    types.TEXT_DOCUMENT_DIAGNOSTIC: _document_diagnostic,
    types.TEXT_DOCUMENT_DOCUMENT_COLOR: _document_color,
    types.TEXT_DOCUMENT_DOCUMENT_HIGHLIGHT: _document_highlight,
    types.TEXT_DOCUMENT_DOCUMENT_LINK: _document_link,
    types.TEXT_DOCUMENT_DOCUMENT_SYMBOL: _document_symbol,
    types.TEXT_DOCUMENT_FOLDING_RANGE: _folding_range,
    types.TEXT_DOCUMENT_FORMATTING: _formatting,
    types.TEXT_DOCUMENT_HOVER: _hover,
    types.TEXT_DOCUMENT_IMPLEMENTATION: _goto,
    types.TEXT_DOCUMENT_INLAY_HINT: _inlay_hint,
    types.TEXT_DOCUMENT_LINKED_EDITING_RANGE: _linked_editing_range,
    types.TEXT_DOCUMENT_MONIKER: _moniker,
    types.TEXT_DOCUMENT_ON_TYPE_FORMATTING: _formatting,
    types.TEXT_DOCUMENT_PREPARE_CALL_HIERARCHY: _prepare_call_hierarchy,
    types.TEXT_DOCUMENT_PREPARE_RENAME: _prepare_rename,
    types.TEXT_DOCUMENT_PREPARE_TYPE_HIERARCHY: _prepare_type_hierarchy,
    types.TEXT_DOCUMENT_RANGE_FORMATTING: _formatting,
    types.TEXT_DOCUMENT_REFERENCES: _locations,
    types.TEXT_DOCUMENT_RENAME: _rename,
    types.TEXT_DOCUMENT_SELECTION_RANGE: _selection_range,
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL: _semantic_tokens_full,
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL_DELTA: _semantic_tokens_delta,
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_RANGE: _semantic_tokens_range,
    types.TEXT_DOCUMENT_SIGNATURE_HELP: _signature_help,
    types.TEXT_DOCUMENT_TYPE_DEFINITION: _goto,
    types.WORKSPACE_DIAGNOSTIC: _workspace_diagnostic,
    types.WORKSPACE_EXECUTE_COMMAND: _execute_command,
    types.WORKSPACE_SYMBOL: _workspace_symbol,
    types.WORKSPACE_SYMBOL_RESOLVE: _workspace_symbol_resolve,
    types.WORKSPACE_WILL_CREATE_FILES: _file_operation,
    types.WORKSPACE_WILL_DELETE_FILES: _file_operation,
    types.WORKSPACE_WILL_RENAME_FILES: _file_operation,
}


def supported_methods() -> list[str]:
    """Request methods the fixture server answers."""
    return sorted(_BUILDERS)


def get_response(method: str, response_num: int, uri_for: UriFor = relative_uri) -> Any:
    """
    The canned response for ``method`` and ``response_num``.

    Raises:
        KeyError: If ``method`` is not served by the fixture.
    """
    return _BUILDERS[method](uri_for).get(response_num)


def get_diagnostics_response(
    response_num: int, uri_for: UriFor = relative_uri
) -> list[types.Diagnostic] | None:
    """Diagnostics published for the opened document, or None for an unknown number."""
    return _diagnostics(uri_for).get(response_num)
