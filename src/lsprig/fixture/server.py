"""Fixture LSP server using pygls 2.0.

Answers every supported request with a canned response chosen by the
``response_num`` side file at the workspace root (the parent of the client's
root URI), so the harness can be exercised against every response shape
without depending on a real server's heuristics.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from lsprotocol import types
from pygls.lsp.server import LanguageServer
from pygls.uris import from_fs_path, to_fs_path

from lsprig.fixture.error_handling import wrap_handler
from lsprig.fixture.responses import (
    COMMAND_NAME,
    DIAGNOSTIC_IDENTIFIER,
    PROGRESS_TOKEN,
    TOKEN_TYPES,
    get_diagnostics_response,
    get_response,
    supported_methods,
)
from lsprig.logging import get_logger

__all__ = ["RESPONSE_NUM_FILE", "PROGRESS_COUNT_FILE", "create_server", "read_int"]

RESPONSE_NUM_FILE = "response_num"
PROGRESS_COUNT_FILE = "progress_count"

_LEGEND = types.SemanticTokensLegend(token_types=TOKEN_TYPES, token_modifiers=[])
_FILE_OPERATIONS = types.FileOperationRegistrationOptions(
    filters=[types.FileOperationFilter(pattern=types.FileOperationPattern(glob="**/*"))]
)

_FEATURE_OPTIONS: dict[str, Any] = {
    types.TEXT_DOCUMENT_COMPLETION: types.CompletionOptions(
        trigger_characters=["."], resolve_provider=True
    ),
    types.TEXT_DOCUMENT_CODE_ACTION: types.CodeActionOptions(resolve_provider=True),
    types.TEXT_DOCUMENT_CODE_LENS: types.CodeLensOptions(resolve_provider=True),
    types.TEXT_DOCUMENT_DOCUMENT_LINK: types.DocumentLinkOptions(resolve_provider=True),
    types.TEXT_DOCUMENT_DIAGNOSTIC: types.DiagnosticOptions(
        identifier=DIAGNOSTIC_IDENTIFIER,
        inter_file_dependencies=False,
        workspace_diagnostics=True,
    ),
    types.TEXT_DOCUMENT_ON_TYPE_FORMATTING: types.DocumentOnTypeFormattingOptions(
        first_trigger_character="}"
    ),
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL: _LEGEND,
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL_DELTA: _LEGEND,
    types.TEXT_DOCUMENT_SEMANTIC_TOKENS_RANGE: _LEGEND,
    types.TEXT_DOCUMENT_SIGNATURE_HELP: types.SignatureHelpOptions(
        trigger_characters=["(", ","]
    ),
    types.WORKSPACE_SYMBOL: types.WorkspaceSymbolOptions(resolve_provider=True),
    types.WORKSPACE_WILL_CREATE_FILES: _FILE_OPERATIONS,
    types.WORKSPACE_WILL_DELETE_FILES: _FILE_OPERATIONS,
    types.WORKSPACE_WILL_RENAME_FILES: _FILE_OPERATIONS,
}


def read_int(path: Path) -> int | None:
    """Integer stored in a side file, or None if it is missing or malformed."""
    try:
        return int(path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None


def create_server(
    *,
    logger: logging.Logger | None = None,
    response_num: int | None = None,
    progress_count: int | None = None,
) -> LanguageServer:
    """
    Create and configure the fixture server.

    Side files in the workspace root take precedence over the fallbacks.

    Args:
        logger: Optional logger instance. If None, uses the lsprig.fixture logger.
        response_num: Response set used when there is no ``response_num`` file.
        progress_count: Progress cycles emitted when there is no
            ``progress_count`` file.

    Returns:
        Configured LanguageServer answering every supported request method.
    """
    if logger is None:
        logger = get_logger("fixture")

    server = LanguageServer("lsprig-fixture", "v0.1.0")
    fallbacks = {RESPONSE_NUM_FILE: response_num, PROGRESS_COUNT_FILE: progress_count}

    def src_dir() -> Path | None:
        root_uri = server.workspace.root_uri
        fs_path = to_fs_path(root_uri) if root_uri else None
        return Path(fs_path) if fs_path else None

    def side_file_value(name: str) -> int | None:
        src = src_dir()
        value = read_int(src.parent / name) if src is not None else None
        if value is None:
            value = fallbacks[name]
        if value is None and name == RESPONSE_NUM_FILE:
            logger.error("No %s side file and no fallback configured", name)
        return value

    def uri_for(relative: str) -> str:
        src = src_dir()
        assert src is not None
        return from_fs_path(str(src / relative)) or (src / relative).as_uri()

    def respond(method: str) -> Any:
        response_num = side_file_value(RESPONSE_NUM_FILE)
        logger.info("Received %s request (response_num=%s)", method, response_num)
        if response_num is None:
            return None
        return get_response(method, response_num, uri_for)

    def register(method: str) -> None:
        @server.feature(method, _FEATURE_OPTIONS.get(method))
        @wrap_handler(logger=logger, method=method)
        def handler(params: Any) -> Any:
            return respond(method)

    for method in supported_methods():
        if method == types.WORKSPACE_EXECUTE_COMMAND:
            continue
        register(method)

    @server.command(COMMAND_NAME)
    @wrap_handler(logger=logger, method=types.WORKSPACE_EXECUTE_COMMAND)
    def run_command(*args: Any) -> Any:
        return respond(types.WORKSPACE_EXECUTE_COMMAND)

    @server.feature(types.INITIALIZED)
    @wrap_handler(logger=logger, method=types.INITIALIZED)
    async def initialized(params: types.InitializedParams) -> None:
        """Emit ``progress_count`` begin/end progress cycles, if requested."""
        count = side_file_value(PROGRESS_COUNT_FILE)
        if not count:
            return

        await server.protocol.send_request_async(
            types.WINDOW_WORK_DONE_PROGRESS_CREATE,
            types.WorkDoneProgressCreateParams(token=PROGRESS_TOKEN),
        )
        for index in range(1, count + 1):
            logger.debug("Progress cycle %d/%d", index, count)
            server.protocol.notify(
                types.PROGRESS,
                types.ProgressParams(
                    token=PROGRESS_TOKEN,
                    value={"kind": "begin", "title": f"Indexing ({index}/{count})"},
                ),
            )
            server.protocol.notify(
                types.PROGRESS,
                types.ProgressParams(
                    token=PROGRESS_TOKEN,
                    value={"kind": "end", "message": f"Indexed ({index}/{count})"},
                ),
            )

    @server.feature(types.TEXT_DOCUMENT_DID_OPEN)
    @wrap_handler(logger=logger, method=types.TEXT_DOCUMENT_DID_OPEN)
    def did_open(params: types.DidOpenTextDocumentParams) -> None:
        """Publish the diagnostics selected by ``response_num``."""
        uri = params.text_document.uri
        response_num = side_file_value(RESPONSE_NUM_FILE)
        if response_num is None:
            return
        diagnostics = get_diagnostics_response(response_num, uri_for)
        if diagnostics is None:
            logger.error("Invalid response number: %d", response_num)
            return
        logger.info("Publishing %d diagnostics for %s", len(diagnostics), uri)
        server.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    return server
