"""Minimal JSON-RPC client speaking LSP over a server's stdio."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from lsprotocol import types

from lsprig.errors import ServerError
from lsprig.logging import get_logger

__all__ = [
    "JsonRpcClient",
    "NotificationHandler",
    "read_lsp_message",
    "write_lsp_message",
]

_logger = get_logger("harness.client")

NotificationHandler = Callable[[str, Any], None]

_METHOD_NOT_FOUND = -32601


async def write_lsp_message(
    writer: asyncio.StreamWriter, payload: dict[str, Any]
) -> None:
    """Write an LSP message with Content-Length header."""
    body = json.dumps(payload).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("utf-8")
    writer.write(header + body)
    await writer.drain()


async def read_lsp_message(reader: asyncio.StreamReader) -> dict[str, Any] | None:
    """
    Read one LSP message, parsing the Content-Length header.

    Returns:
        The decoded message, or None at end of stream.

    Raises:
        ValueError: If the header block carries no Content-Length.
    """
    headers: dict[str, str] = {}
    while True:
        line = await reader.readline()
        if not line:
            return None
        line_str = line.decode("ascii", errors="replace").strip()
        if not line_str:
            break
        if ":" in line_str:
            key, value = line_str.split(":", 1)
            headers[key.strip().lower()] = value.strip()

    content_length = int(headers.get("content-length", "0"))
    if content_length == 0:
        raise ValueError("No Content-Length header in LSP message")

    try:
        body = await reader.readexactly(content_length)
    except asyncio.IncompleteReadError:
        return None
    return json.loads(body.decode("utf-8"))


def _answer_server_request(method: str, params: Any) -> Any:
    """Result sent back for requests the server makes of the client."""
    if method == types.WORKSPACE_CONFIGURATION:
        items = params.get("items", []) if isinstance(params, dict) else []
        return [None] * len(items)
    if method == types.WORKSPACE_APPLY_EDIT:
        return {"applied": True}
    return None


_ACKNOWLEDGED_REQUESTS = frozenset(
    {
        types.WINDOW_WORK_DONE_PROGRESS_CREATE,
        types.WORKSPACE_CONFIGURATION,
        types.CLIENT_REGISTER_CAPABILITY,
        types.CLIENT_UNREGISTER_CAPABILITY,
        types.WORKSPACE_APPLY_EDIT,
    }
)


class JsonRpcClient:
    """
    One connection to a server-under-test.

    A single reader task consumes the server's stdout. Responses resolve
    futures keyed by request id; notifications go to ``on_notification``;
    requests from the server are answered so it never blocks on us.
    """

    def __init__(
        self,
        *,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        on_notification: NotificationHandler,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._on_notification = on_notification
        self._request_id = 0
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._reader_task: asyncio.Task[None] | None = None
        self._closed = False

    def start(self) -> None:
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(self._read_loop())

    async def request(self, method: str, params: Any = None) -> Any:
        """
        Send a request and wait for its result.

        Raises:
            ServerError: If the server answers with a JSON-RPC error.
            ConnectionError: If the connection closes before the answer.
        """
        self._request_id += 1
        request_id = self._request_id
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            message["params"] = params

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        _logger.debug("-> %s (%d)", method, request_id)
        try:
            await write_lsp_message(self._writer, message)
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: Any = None) -> None:
        """Send a notification (no response expected)."""
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        _logger.debug("-> %s", method)
        await write_lsp_message(self._writer, message)

    async def close(self) -> None:
        """Stop the reader task and fail any request still waiting."""
        self._closed = True
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._fail_pending(ConnectionResetError("Client closed"))

    async def _read_loop(self) -> None:
        try:
            while not self._closed:
                message = await read_lsp_message(self._reader)
                if message is None:
                    _logger.debug("Server closed its output stream")
                    break
                await self._dispatch(message)
        except (ValueError, json.JSONDecodeError) as e:
            _logger.error("Malformed message from server: %s", e)
            self._fail_pending(ConnectionError(f"Malformed message from server: {e}"))
            return
        except ConnectionError as e:
            self._fail_pending(e)
            return
        self._fail_pending(
            ConnectionResetError("Server closed the connection before responding")
        )

    async def _dispatch(self, message: dict[str, Any]) -> None:
        msg_id = message.get("id")
        method = message.get("method")

        if method is None and msg_id is not None:
            future = self._pending.get(msg_id)
            if future is None or future.done():
                _logger.warning("Received response for id %r, but it was not pending", msg_id)
                return
            error = message.get("error")
            if error is not None:
                future.set_exception(
                    ServerError(
                        error.get("code", 0),
                        error.get("message", "Unknown error"),
                        data=error.get("data"),
                    )
                )
            else:
                future.set_result(message.get("result"))
            return

        if method is not None and msg_id is None:
            _logger.debug("<- %s", method)
            self._on_notification(method, message.get("params"))
            return

        if method is not None:
            await self._answer(msg_id, method, message.get("params"))
            return

        _logger.warning("Received message with unknown structure: %s", message)

    async def _answer(self, msg_id: Any, method: str, params: Any) -> None:
        reply: dict[str, Any] = {"jsonrpc": "2.0", "id": msg_id}
        if method in _ACKNOWLEDGED_REQUESTS:
            _logger.debug("Acknowledging server request %s", method)
            reply["result"] = _answer_server_request(method, params)
        else:
            _logger.warning("Rejecting unsupported server request %s", method)
            reply["error"] = {
                "code": _METHOD_NOT_FOUND,
                "message": f"Unsupported method: {method}",
            }
        await write_lsp_message(self._writer, reply)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
