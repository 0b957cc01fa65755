# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Browser-level remote-debugging channel.

Opens page targets, hands out a Page channel per target, and closes the
targets it opened when the bridge shuts down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlsplit

from .connection import Connection, Connector, FaultHandler
from .messages import Command, CreateTargetResult, GetTargetsResult, Target, TargetInfo
from .page import Page

logger = logging.getLogger(__name__)

PAGE_ENDPOINT_PATH = "/devtools/page/"
BLANK_URL = "about:blank"
CLOSE_TIMEOUT = 5.0


def page_endpoint(browser_url: str, target_id: str) -> str:
    """Devtools endpoint of ``target_id`` on the same host as ``browser_url``."""
    parts = urlsplit(browser_url)
    return f"{parts.scheme}://{parts.netloc}{PAGE_ENDPOINT_PATH}{target_id}"


class Browser:
    """Root remote-debugging channel plus the targets opened through it."""

    def __init__(
        self,
        url: str,
        *,
        connector: Connector | None = None,
        on_fault: FaultHandler | None = None,
    ) -> None:
        self.connection = Connection(url, connector=connector, name="browser", on_fault=on_fault)
        self.targets: list[Target] = []
        self._connector = connector
        self._on_fault = on_fault

    @property
    def url(self) -> str:
        return self.connection.url

    def connect(self) -> Browser:
        self.connection.connect()
        return self

    async def ready(self) -> None:
        await self.connection.ready()

    async def close(self) -> None:
        await self.connection.close()

    async def call(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.connection.call(method, params)

    # ── Targets ──────────────────────────────────────────────────────

    async def get_targets(self) -> list[TargetInfo]:
        reply = await self.call(Command.GET_TARGETS)
        return GetTargetsResult.model_validate(reply).target_infos

    async def create_target(self, url: str, *, record_url: str | None = None) -> Target:
        """Create a tab loading ``url`` and track it under ``record_url`` (default ``url``)."""
        reply = await self.call(Command.CREATE_TARGET, {"url": url})
        target = Target(CreateTargetResult.model_validate(reply).target_id, record_url or url)
        self.targets.append(target)
        logger.info("Opened target %s (%s)", target.target_id, target.url)
        return target

    async def close_target(self, target_id: str) -> None:
        await self.call(Command.CLOSE_TARGET, {"targetId": target_id})

    def endpoint_for(self, target_id: str) -> str:
        return page_endpoint(self.url, target_id)

    def page_for(self, target_id: str) -> Page:
        """An unconnected Page channel for ``target_id``."""
        return Page(
            self.endpoint_for(target_id),
            target_id=target_id,
            connector=self._connector,
            on_fault=self._on_fault,
        )

    async def open(self, url: str) -> Page:
        """Open a new tab, navigate it to ``url`` and return its connected Page."""
        await self.ready()
        target = await self.create_target(BLANK_URL, record_url=url)
        page = self.page_for(target.target_id).connect()
        await page.ready()
        await page.navigate(url)
        return page

    async def close_all(self) -> None:
        """Best-effort close of every tracked target.

        Closes run concurrently. A close that fails, or gets no reply within
        ``CLOSE_TIMEOUT`` seconds, is logged and does not stop the others.
        Targets stay in ``targets``.
        """
        if not self.targets:
            return
        results = await asyncio.gather(
            *(asyncio.wait_for(self.close_target(t.target_id), CLOSE_TIMEOUT) for t in self.targets),
            return_exceptions=True,
        )
        for target, result in zip(self.targets, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Failed to close target %s (%s): %s", target.target_id, target.url, result)
        logger.info("Closed %d target(s)", len(self.targets))
