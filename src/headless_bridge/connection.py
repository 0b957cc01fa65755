# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Correlating JSON message client over one websocket.

Requests carry a strictly increasing ``id`` and complete when the reply with
the same ``id`` arrives, in whatever order replies come back. Frames without a
matching pending ``id`` are notifications, routed by ``method`` to at most one
handler. Handlers run one at a time in arrival order on a dispatcher task, so
the reader keeps routing replies while a handler is suspended.

A lost or broken socket is a ChannelFault. It is raised from ``wait_closed()``
and passed to ``on_fault``; calls still pending on that channel are left as
they are.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

from pydantic import ValidationError
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from .errors import ChannelFault, ProtocolError, RemoteCallError
from .messages import Envelope

logger = logging.getLogger(__name__)

# Runtime.evaluate results and console previews can be large.
MAX_MESSAGE_SIZE = 64 * 1024 * 1024


class Socket(Protocol):
    """The part of a websocket client connection this module uses."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


Connector = Callable[[str], Awaitable[Socket]]
NotificationHandler = Callable[[dict[str, Any]], Awaitable[None] | None]
FaultHandler = Callable[[BaseException], None]


async def websocket_connector(url: str) -> Socket:
    """Default connector: a ``websockets`` client connection."""
    return await ws_connect(url, max_size=MAX_MESSAGE_SIZE)


class Connection:
    """Request/response and notification client over a single duplex channel."""

    def __init__(
        self,
        url: str,
        *,
        connector: Connector | None = None,
        name: str = "",
        on_fault: FaultHandler | None = None,
    ) -> None:
        self.url = url
        self.name = name or url
        self._connector = connector or websocket_connector
        self._on_fault = on_fault
        self._socket: Socket | None = None
        self._last_id = 0
        self._pending: dict[int, asyncio.Future[Envelope]] = {}
        self._handlers: dict[str, NotificationHandler] = {}
        self._inbox: asyncio.Queue[tuple[str, dict[str, Any]] | None] = asyncio.Queue()
        self._opening: asyncio.Task[None] | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._closing = False

    def __repr__(self) -> str:
        return f"Connection({self.name!r}, open={self.is_open})"

    @property
    def is_open(self) -> bool:
        return self._socket is not None and not self._closing

    # ── Lifecycle ────────────────────────────────────────────────────

    def connect(self) -> Connection:
        """Start opening the channel. Await ``ready()`` to observe completion."""
        if self._opening is None:
            self._opening = asyncio.get_running_loop().create_task(self._open(), name=f"open:{self.name}")
        return self

    async def ready(self) -> None:
        """Wait until the channel is open. Raises ChannelFault if it never opens."""
        self.connect()
        await asyncio.shield(self._opening)

    async def _open(self) -> None:
        try:
            self._socket = await self._connector(self.url)
        except (OSError, WebSocketException) as exc:
            raise ChannelFault(self.url, f"connect failed: {exc}") from exc
        if self._closing:
            # close() ran while the socket was still opening.
            await self._socket.close()
            logger.debug("Channel closed while opening: %s", self.name)
            return
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._read_loop(), name=f"read:{self.name}"),
            loop.create_task(self._dispatch_loop(), name=f"dispatch:{self.name}"),
        ]
        for task in self._tasks:
            task.add_done_callback(self._task_done)
        logger.debug("Channel open: %s", self.name)

    async def close(self) -> None:
        """Close the channel locally. Not a fault; ``wait_closed()`` returns normally."""
        if self._closing:
            return
        self._closing = True
        if self._socket is not None:
            await self._socket.close()
            logger.debug("Channel closed: %s", self.name)

    async def wait_closed(self) -> None:
        """Wait for the channel to end. Re-raises the ChannelFault that ended it, if any."""
        await self.ready()
        if not self._tasks:
            return
        done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    def _task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        logger.error("Channel fault on %s: %s", self.name, exc)
        if self._on_fault is not None:
            self._on_fault(exc)
        else:
            task.get_loop().call_exception_handler(
                {"message": f"unhandled channel fault on {self.name}", "exception": exc, "task": task}
            )

    # ── Outbound ─────────────────────────────────────────────────────

    async def call(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a request and wait for its correlated reply.

        Returns the reply's ``result``. Raises RemoteCallError when the reply
        carries ``error``.
        """
        self._last_id += 1
        call_id = self._last_id
        future: asyncio.Future[Envelope] = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future
        try:
            await self._send({"id": call_id, "method": method, "params": params})
        except BaseException:
            del self._pending[call_id]
            raise
        reply = await future
        if reply.error is not None:
            raise RemoteCallError(method, params, reply.error.message, reply.error.code)
        return reply.result or {}

    async def emit(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification. No id, no reply, nothing pending."""
        await self._send({"method": method, "params": params})

    async def _send(self, message: dict[str, Any]) -> None:
        if self._socket is None:
            raise RuntimeError(f"Channel {self.name} not open. Call connect() and await ready() first.")
        if message["params"] is None:
            del message["params"]
        try:
            await self._socket.send(json.dumps(message))
        except (OSError, ConnectionClosed) as exc:
            raise ChannelFault(self.url, f"send failed: {exc}") from exc

    # ── Inbound ──────────────────────────────────────────────────────

    def on(self, method: str, handler: NotificationHandler) -> None:
        """Route notifications named ``method`` to ``handler``, replacing any previous one."""
        self._handlers[str(method)] = handler

    async def _read_loop(self) -> None:
        try:
            async for frame in self._socket:
                self._route(frame)
        except (OSError, ConnectionClosedError) as exc:
            if not self._closing:
                raise ChannelFault(self.url, f"connection lost: {exc}") from exc
        finally:
            self._inbox.put_nowait(None)

    def _route(self, frame: str | bytes) -> None:
        try:
            envelope = Envelope.model_validate_json(frame)
        except ValidationError as exc:
            raise ProtocolError(self.url, f"malformed frame: {exc.errors()[0]['msg']}") from exc

        if envelope.id is not None and envelope.id in self._pending:
            future = self._pending.pop(envelope.id)
            if not future.done():
                future.set_result(envelope)
        elif envelope.method is not None:
            self._inbox.put_nowait((envelope.method, envelope.params))
        else:
            logger.debug("Dropping reply for unknown id %s on %s", envelope.id, self.name)

    async def _dispatch_loop(self) -> None:
        while (item := await self._inbox.get()) is not None:
            method, params = item
            handler = self._handlers.get(method)
            if handler is None:
                logger.debug("No handler for %s on %s", method, self.name)
                continue
            try:
                result = handler(params)
                if inspect.isawaitable(result):
                    await result
            except ChannelFault:
                raise
            except Exception:
                logger.exception("Handler for %s failed on %s", method, self.name)
