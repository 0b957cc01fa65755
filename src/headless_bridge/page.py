# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Remote-debugging channel scoped to one page target."""

from __future__ import annotations

import logging
from typing import Any

from .connection import Connection, Connector, FaultHandler, NotificationHandler
from .errors import EvaluationException
from .formatting import describe_exception
from .messages import Command, EvaluateResult

logger = logging.getLogger(__name__)

WAIT_FOR_INTERVAL_MS = 100

# The poll loop runs inside the page: one Runtime.evaluate per wait_for, however
# many rounds it takes. No timeout.
_WAIT_FOR_JS = """(async () => {{
  while (true) {{
    const result = await ({expression});
    if (result) return await ({after_expression})(result);
    await new Promise(r => setTimeout(r, {interval}));
  }}
}})()"""


class Page:
    """A page target's channel with navigation, evaluation and polling helpers."""

    def __init__(
        self,
        url: str,
        *,
        target_id: str = "",
        connector: Connector | None = None,
        on_fault: FaultHandler | None = None,
    ) -> None:
        self.target_id = target_id
        self.connection = Connection(url, connector=connector, name=f"page:{target_id or url}", on_fault=on_fault)

    @property
    def url(self) -> str:
        """Devtools endpoint of this page."""
        return self.connection.url

    def connect(self) -> Page:
        self.connection.connect()
        return self

    async def ready(self) -> None:
        await self.connection.ready()

    async def close(self) -> None:
        await self.connection.close()

    def on(self, event: str, handler: NotificationHandler) -> None:
        self.connection.on(event, handler)

    async def call(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.connection.call(method, params)

    async def navigate(self, url: str) -> dict[str, Any]:
        return await self.call(Command.NAVIGATE, {"url": url})

    async def enable_runtime(self) -> None:
        """Turn on console and exception notifications for this page."""
        await self.call(Command.RUNTIME_ENABLE)

    async def evaluate(self, expression: str) -> Any:
        """Evaluate ``expression`` in the page, awaiting promises, and return its value.

        Raises:
            EvaluationException: The expression threw.
        """
        reply = await self.call(
            Command.EVALUATE,
            {"expression": expression, "awaitPromise": True, "returnByValue": True},
        )
        evaluated = EvaluateResult.model_validate(reply)
        details = evaluated.exception_details
        if details is not None:
            raise EvaluationException(describe_exception(details), details.url, details.line_number, details.column_number)
        return evaluated.result.value

    async def wait_for(self, expression: str, after_expression: str = "x => x") -> Any:
        """Wait until ``expression`` is truthy in the page.

        ``after_expression`` is a JS function applied to the first truthy
        result; its (awaited) return value is returned.
        """
        logger.debug("wait_for on %s: %s", self.connection.name, expression)
        return await self.evaluate(
            _WAIT_FOR_JS.format(expression=expression, after_expression=after_expression, interval=WAIT_FOR_INTERVAL_MS)
        )
