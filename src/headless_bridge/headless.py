# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Headless orchestrator: links the harness channel to a browser and this page.

Control messages from the harness drive a forward-only session::

    idle ──connect──▶ connecting ──▶ ready ──close──▶ closed

Once ready, console calls and uncaught exceptions reported by the page are
forwarded to the harness in the order the page reports them.
"""

from __future__ import annotations

import functools
import logging
from enum import StrEnum
from typing import Any

from .browser import Browser
from .connection import Connection, Connector, FaultHandler
from .errors import InvalidStateError, TargetNotFoundError
from .formatting import format_console_arg, format_exception_details
from .messages import (
    ConnectParams,
    ConsoleAPICalled,
    ControlMethod,
    Event,
    ExceptionThrown,
    HarnessEvent,
    OpenParams,
)
from .page import Page

logger = logging.getLogger(__name__)

# Reveals the content the page was served with once the bridge is attached.
DEFAULT_ATTACH_EXPRESSION = """(() => {
  const template = document.head.querySelector("template");
  if (template) document.body.append(template.content);
})()"""


class SessionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"


class Headless:
    """Owns the harness channel, one Browser and this page's own Page."""

    def __init__(
        self,
        harness: Connection,
        location: str,
        *,
        connector: Connector | None = None,
        on_fault: FaultHandler | None = None,
        attach_expression: str | None = DEFAULT_ATTACH_EXPRESSION,
    ) -> None:
        self.harness = harness
        self.location = location
        self.attach_expression = attach_expression
        self.state = SessionState.IDLE
        self.browser: Browser | None = None
        self.page: Page | None = None
        self.target_id: str | None = None
        self._connector = connector
        self._on_fault = on_fault
        for method in ControlMethod:
            harness.on(method, functools.partial(self.dispatch, method))

    async def dispatch(self, method: ControlMethod, params: dict[str, Any]) -> None:
        logger.debug("Control message %s in state %s", method, self.state)
        match method:
            case ControlMethod.CONNECT:
                await self.on_connect(ConnectParams.model_validate(params))
            case ControlMethod.OPEN:
                await self.on_open(OpenParams.model_validate(params))
            case ControlMethod.CLOSE:
                await self.on_close()

    def _require(self, state: SessionState, method: ControlMethod) -> None:
        if self.state is not state:
            raise InvalidStateError(f"{method} is not valid in state {self.state} (expected {state})")

    # ── Control handlers ─────────────────────────────────────────────

    async def on_connect(self, params: ConnectParams) -> None:
        """Attach to the browser, find this page's target and start forwarding."""
        self._require(SessionState.IDLE, ControlMethod.CONNECT)
        self.state = SessionState.CONNECTING

        self.browser = Browser(params.browser_websocket_url, connector=self._connector, on_fault=self._on_fault)
        await self.browser.connect().ready()

        # Exact url match; the first of several identical urls wins.
        targets = await self.browser.get_targets()
        target = next((t for t in targets if t.url == self.location), None)
        if target is None:
            raise TargetNotFoundError(self.location)
        self.target_id = target.target_id

        self.page = self.browser.page_for(target.target_id).connect()
        await self.page.ready()
        # Registered before Runtime.enable, which replays earlier console calls.
        self.page.on(Event.CONSOLE_API_CALLED, self._forward_console)
        self.page.on(Event.EXCEPTION_THROWN, self._forward_exception)
        await self.page.enable_runtime()

        if self.attach_expression:
            await self.page.evaluate(self.attach_expression)

        await self.harness.emit(HarnessEvent.CONNECT, {"url": self.page.url})
        self.state = SessionState.READY
        logger.info("Connected to target %s via %s", self.target_id, self.page.url)

    async def on_open(self, params: OpenParams) -> None:
        """Open ``params.url`` in a new tab. Nothing is sent back to the harness."""
        self._require(SessionState.READY, ControlMethod.OPEN)
        await self.browser.ready()
        await self.browser.create_target(params.url)

    async def on_close(self) -> None:
        """Tell the harness, then close this page's own target."""
        self._require(SessionState.READY, ControlMethod.CLOSE)
        self.state = SessionState.CLOSED
        # The harness must hear about the close before the target disappears.
        await self.harness.emit(HarnessEvent.CLOSE, {"url": self.location})
        # Closing the target drops its devtools socket; close our side first.
        await self.page.close()
        await self.browser.close_target(self.target_id)
        logger.info("Closed own target %s", self.target_id)

    # ── Forwarders ───────────────────────────────────────────────────

    async def _forward_console(self, params: dict[str, Any]) -> None:
        call = ConsoleAPICalled.model_validate(params)
        await self.harness.emit(call.type, {"url": self.location, "args": [format_console_arg(a) for a in call.args]})

    async def _forward_exception(self, params: dict[str, Any]) -> None:
        thrown = ExceptionThrown.model_validate(params)
        await self.harness.emit(
            HarnessEvent.EXCEPTION,
            {"url": self.location, "args": [format_exception_details(thrown.exception_details)]},
        )

    # ── Teardown ─────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Best-effort close of opened targets, then the browser and page channels."""
        if self.browser is not None:
            await self.browser.close_all()
            await self.browser.close()
        if self.page is not None:
            await self.page.close()
