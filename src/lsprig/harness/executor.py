"""Executing a request plan against a running server.

The executor is the only writer of the ``results``, ``empty`` and
``timeout`` artifacts. It drives the LSP session in order: initialize,
open documents, wait for readiness, issue the request once and record the
outcome, all within the plan timeout. The server is then shut down outside
that bound.
"""

from __future__ import annotations

import asyncio
from typing import Any

from lsprotocol import types

from lsprig.errors import ServerError
from lsprig.harness.client import JsonRpcClient
from lsprig.harness.driver import ProcessDriver
from lsprig.harness.plan import RequestPlan
from lsprig.harness.readiness import (
    ProgressReadiness,
    SimpleReadiness,
    readiness_for,
)
from lsprig.harness.requests import RequestHook
from lsprig.harness.workspace import Workspace
from lsprig.logging import get_logger

__all__ = ["RequestExecutor", "is_empty_result"]

_logger = get_logger("harness.executor")

_SHUTDOWN_GRACE = 1.0

_LOG_NOTIFICATIONS = frozenset({types.WINDOW_LOG_MESSAGE, types.WINDOW_SHOW_MESSAGE})


def is_empty_result(result: Any) -> bool:
    """A null result or an empty array is recorded as the ``empty`` marker."""
    return result is None or (isinstance(result, list) and not result)


class _NoBaseResult(Exception):
    pass


class RequestExecutor:
    """Runs one ``RequestPlan`` over one server process."""

    def __init__(
        self, plan: RequestPlan, workspace: Workspace, driver: ProcessDriver
    ) -> None:
        self.plan = plan
        self.workspace = workspace
        self.driver = driver
        self.readiness = readiness_for(plan.start, report=workspace.report_log)
        self._extra = {"test_id": plan.test_id}
        self._captured_diagnostics: Any = None
        self._latest_diagnostics: Any = None
        self._diagnostics_arrived = asyncio.Event()

    async def execute(self) -> None:
        """
        Run the plan, then shut the server down.

        Only the session up to the recorded outcome is bounded by the plan
        timeout. On timeout the ``timeout`` marker is written and the run is
        abandoned. The shutdown handshake has its own grace period and never
        changes the recorded outcome.

        Raises:
            ServerError: If the server answered with a JSON-RPC error.
        """
        client = JsonRpcClient(
            reader=self.driver.stdout,
            writer=self.driver.stdin,
            on_notification=self._on_notification,
        )
        client.start()
        try:
            if await self._run_bounded(client):
                await self._shutdown(client)
        finally:
            await client.close()

    async def _run_bounded(self, client: JsonRpcClient) -> bool:
        """Run the session within the plan timeout; return whether to shut down."""
        try:
            await asyncio.wait_for(self._session(client), timeout=self.plan.timeout)
        except asyncio.TimeoutError:
            self.readiness.mark_timed_out()
            _logger.info(
                "%s timed out after %.3fs (state %s)",
                self.plan.method,
                self.plan.timeout,
                self.readiness.state,
                extra=self._extra,
            )
            self.workspace.report_error(
                f"Timeout of {int(self.plan.timeout * 1000)}ms exceeded"
            )
            self.workspace.mark_timeout()
            return False
        except ServerError as e:
            self.workspace.report_error(e.message)
            e.test_id = self.plan.test_id
            e.workspace = self.workspace.root
            raise
        except ConnectionError as e:
            _logger.warning("Lost connection to server: %s", e, extra=self._extra)
            self.workspace.report_error(f"Lost connection to server: {e}")
            return False
        except _NoBaseResult as e:
            self.workspace.report_error(str(e))
        return True

    async def _session(self, client: JsonRpcClient) -> None:
        await client.request(types.INITIALIZE, self.plan.initialize_params)
        await client.notify(types.INITIALIZED, {})
        for document in self.plan.documents:
            await client.notify(
                types.TEXT_DOCUMENT_DID_OPEN, {"textDocument": document}
            )
        self.workspace.report_log("Attached to server")

        # Diagnostics captured as a notification only count publish events
        if (
            isinstance(self.readiness, SimpleReadiness)
            and self.plan.hook is not RequestHook.NOTIFICATION
        ):
            self.readiness.trigger()

        await self.readiness.wait()
        self.readiness.mark_issued()
        self.workspace.report_log(
            f"Issuing {self.plan.method} request (attempt {self.readiness.attempt})"
        )
        _logger.debug("Issuing %s", self.plan.method, extra=self._extra)

        result = await self._issue(client)
        self.readiness.mark_received()
        self._record(result)

    async def _issue(self, client: JsonRpcClient) -> Any:
        plan = self.plan
        if plan.hook is RequestHook.NOTIFICATION:
            while self._captured_diagnostics is None and self._latest_diagnostics is None:
                self._diagnostics_arrived.clear()
                await self._diagnostics_arrived.wait()
            params = self._captured_diagnostics or self._latest_diagnostics
            return params.get("diagnostics")

        if plan.hook is RequestHook.BASE_THEN_DELTA:
            assert plan.base_method is not None
            base = await client.request(plan.base_method, plan.params)
            result_id = base.get("resultId") if isinstance(base, dict) else None
            if not result_id:
                raise _NoBaseResult(
                    f"No previous resultId in {plan.base_method} response"
                )
            return await client.request(
                plan.method, {**plan.params, "previousResultId": result_id}
            )

        return await client.request(plan.method, plan.params)

    def _record(self, result: Any) -> None:
        if is_empty_result(result):
            _logger.debug("%s returned nothing", self.plan.method, extra=self._extra)
            self.workspace.mark_empty()
        else:
            self.workspace.write_results(result)

    async def _shutdown(self, client: JsonRpcClient) -> None:
        try:
            await asyncio.wait_for(client.request(types.SHUTDOWN), _SHUTDOWN_GRACE)
            await client.notify(types.EXIT)
        except asyncio.TimeoutError:
            self.workspace.report_log("Shutdown failed: no answer to shutdown request")
            return
        except (ServerError, ConnectionError) as e:
            self.workspace.report_log(f"Shutdown failed: {e}")
            return
        await self.driver.wait(_SHUTDOWN_GRACE)

    def _on_notification(self, method: str, params: Any) -> None:
        if method == types.PROGRESS:
            if isinstance(self.readiness, ProgressReadiness):
                self.readiness.on_progress(params)
        elif method == types.TEXT_DOCUMENT_PUBLISH_DIAGNOSTICS:
            primary = isinstance(params, dict) and params.get("uri") == self.plan.primary_uri
            if primary:
                self._latest_diagnostics = params
                self._diagnostics_arrived.set()
            if isinstance(self.readiness, SimpleReadiness) and self.readiness.trigger():
                if self.plan.hook is RequestHook.NOTIFICATION:
                    self._capture_diagnostics(params if primary else None)
        elif method in _LOG_NOTIFICATIONS and isinstance(params, dict):
            self.workspace.report_log(f"LSP LOG: {params.get('message', '')}")

    def _capture_diagnostics(self, params: Any) -> None:
        """
        Keep the diagnostics published for the primary file.

        ``params`` is None when the publish that made the server ready was for
        another file; the latest primary publish is used instead, or the next
        one if none has arrived yet.
        """
        if params is None:
            self.workspace.report_log(
                "Ready on diagnostics for another file; "
                "using the primary file's diagnostics"
            )
            params = self._latest_diagnostics
        self._captured_diagnostics = params
