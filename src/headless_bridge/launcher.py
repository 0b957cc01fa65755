# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Chromium process launcher with remote debugging enabled.

Starts the browser in its own process group on a (free) debugging port and
polls ``/json/version`` until the browser websocket endpoint is published.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import signal
import socket
import tempfile
from contextlib import suppress
from dataclasses import dataclass, field
from types import TracebackType

import httpx

from .errors import LaunchError

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "chromium-browser"
DEFAULT_BROWSER_ARGS = (
    "--headless",
    "--hide-scrollbars",
    "--autoplay-policy=no-user-gesture-required",
    "--no-first-run",
    "--no-default-browser-check",
)
STARTUP_POLL_ATTEMPTS = 1000
STARTUP_POLL_INTERVAL = 0.01  # seconds; 1000 x 10ms = 10s


def free_port() -> int:
    """An unused local TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def fetch_browser_websocket_url(
    port: int,
    *,
    host: str = "127.0.0.1",
    client: httpx.AsyncClient | None = None,
    attempts: int = STARTUP_POLL_ATTEMPTS,
    interval: float = STARTUP_POLL_INTERVAL,
) -> str:
    """Poll ``/json/version`` until it reports ``webSocketDebuggerUrl``.

    Raises:
        LaunchError: The endpoint did not answer within ``attempts * interval``.
    """
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=1.0)
    url = f"http://{host}:{port}/json/version"
    try:
        for _ in range(attempts):
            try:
                response = await client.get(url)
                response.raise_for_status()
                return response.json()["webSocketDebuggerUrl"]
            except (httpx.HTTPError, ValueError, KeyError):
                await asyncio.sleep(interval)
    finally:
        if owns_client:
            await client.aclose()
    raise LaunchError(f"timeout ({attempts * interval:.0f}s) waiting for browser to start on port {port}")


@dataclass
class LaunchConfig:
    """Browser launch configuration."""

    executable: str = field(default_factory=lambda: os.environ.get("HEADLESS_BROWSER_EXECUTABLE", DEFAULT_EXECUTABLE))
    port: int = 0  # 0 = pick a free port
    args: tuple[str, ...] = DEFAULT_BROWSER_ARGS
    extra_args: tuple[str, ...] = ()


class BrowserProcess:
    """A launched browser and its remote-debugging websocket url."""

    def __init__(self, config: LaunchConfig | None = None) -> None:
        self.config = config or LaunchConfig()
        self.port = self.config.port
        self.websocket_url = ""
        self._process: asyncio.subprocess.Process | None = None
        self._profile_dir: str | None = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self, url: str = "about:blank") -> str:
        """Launch the browser on ``url`` and return its websocket url."""
        if self.port == 0:
            self.port = free_port()
        self._profile_dir = tempfile.mkdtemp(prefix="headless-bridge-")
        argv = [
            self.config.executable,
            *self.config.args,
            *self.config.extra_args,
            f"--user-data-dir={self._profile_dir}",
            f"--remote-debugging-port={self.port}",
            url,
        ]
        logger.info("Launching %s on port %d", self.config.executable, self.port)
        try:
            self._process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            self._remove_profile()
            raise LaunchError(f"could not start {self.config.executable}: {exc}") from exc

        try:
            self.websocket_url = await fetch_browser_websocket_url(self.port)
        except LaunchError:
            await self.stop()
            raise
        logger.info("Browser ready: %s", self.websocket_url)
        return self.websocket_url

    async def stop(self) -> None:
        """Kill the browser's whole process group and remove its profile."""
        process, self._process = self._process, None
        if process is not None and process.returncode is None:
            with suppress(ProcessLookupError):
                os.killpg(process.pid, signal.SIGKILL)
            await process.wait()
            logger.info("Browser stopped (pid %d)", process.pid)
        self._remove_profile()

    def _remove_profile(self) -> None:
        if self._profile_dir is not None:
            shutil.rmtree(self._profile_dir, ignore_errors=True)
            self._profile_dir = None

    async def __aenter__(self) -> BrowserProcess:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
