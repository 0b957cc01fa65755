# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""HeadlessContext: the one owned runtime object of a bridge process.

Dependency graph: context.py -> headless.py -> browser.py/page.py -> connection.py.
"""

from __future__ import annotations

import asyncio
import logging

from .config import BridgeConfig
from .connection import Connection, Connector
from .headless import Headless

logger = logging.getLogger(__name__)


class HeadlessContext:
    """Harness channel + orchestrator, with a single shutdown routine."""

    def __init__(self, config: BridgeConfig, *, connector: Connector | None = None) -> None:
        self.config = config
        self._fault: asyncio.Future[None] | None = None
        self.harness = Connection(config.harness_url, connector=connector, name="harness", on_fault=self._record_fault)
        self.headless = Headless(
            self.harness,
            config.page_url,
            connector=connector,
            on_fault=self._record_fault,
            attach_expression=config.attach_expression,
        )

    def _record_fault(self, exc: BaseException) -> None:
        if self._fault is not None and not self._fault.done():
            self._fault.set_exception(exc)

    async def run(self) -> None:
        """Serve the harness until it disconnects.

        Raises the first ChannelFault of any owned channel. Target cleanup
        runs on every exit path, including cancellation.
        """
        loop = asyncio.get_running_loop()
        self._fault = loop.create_future()
        try:
            await self.harness.connect().ready()
            logger.info("Harness connected: %s (page %s)", self.config.harness_url, self.config.page_url)
            closed = loop.create_task(self.harness.wait_closed(), name="harness-wait-closed")
            try:
                await asyncio.wait({closed, self._fault}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closed.cancel()
            faults = [f.exception() for f in (self._fault, closed) if f.done() and not f.cancelled()]
            faults = [exc for exc in faults if exc is not None]
            if faults:
                raise faults[0]
            logger.info("Harness disconnected")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Close opened targets (best effort) and every channel."""
        await self.headless.shutdown()
        await self.harness.close()
        if self._fault is not None and not self._fault.done():
            self._fault.cancel()
