# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the browser launcher (no real browser is started)."""

from __future__ import annotations

import os
import signal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from headless_bridge.errors import LaunchError
from headless_bridge.launcher import (
    DEFAULT_BROWSER_ARGS,
    BrowserProcess,
    LaunchConfig,
    fetch_browser_websocket_url,
    free_port,
)

WS_URL = "ws://127.0.0.1:9333/devtools/browser/abc"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ── /json/version polling ──────────────────────────────────────────


class TestFetchWebsocketUrl:
    @pytest.mark.asyncio
    async def test_retries_until_published(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            if len(calls) == 2:
                return httpx.Response(503)
            if len(calls) == 3:
                return httpx.Response(200, json={"Browser": "Chrome/126"})
            return httpx.Response(200, json={"webSocketDebuggerUrl": WS_URL})

        async with _client(handler) as client:
            url = await fetch_browser_websocket_url(9333, client=client, interval=0)
        assert url == WS_URL
        assert calls == ["/json/version"] * 4

    @pytest.mark.asyncio
    async def test_invalid_json_is_retried(self):
        responses = iter([httpx.Response(200, text="not json"), httpx.Response(200, json={"webSocketDebuggerUrl": WS_URL})])
        async with _client(lambda request: next(responses)) as client:
            assert await fetch_browser_websocket_url(9333, client=client, interval=0) == WS_URL

    @pytest.mark.asyncio
    async def test_timeout(self):
        async with _client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(LaunchError, match="waiting for browser to start on port 9333"):
                await fetch_browser_websocket_url(9333, client=client, attempts=3, interval=0)


# ── BrowserProcess ─────────────────────────────────────────────────


def _fake_process(pid: int = 4242) -> MagicMock:
    process = MagicMock()
    process.pid = pid
    process.returncode = None
    process.wait = AsyncMock(return_value=-9)
    return process


class TestBrowserProcess:
    def test_free_port(self):
        assert 0 < free_port() < 65536

    def test_executable_from_env(self, monkeypatch):
        monkeypatch.setenv("HEADLESS_BROWSER_EXECUTABLE", "/opt/chrome/chrome")
        assert LaunchConfig().executable == "/opt/chrome/chrome"

    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path):
        profile = tmp_path / "profile"
        profile.mkdir()
        process = _fake_process()
        config = LaunchConfig(executable="chromium", port=9333, extra_args=("--mute-audio",))

        with (
            patch("headless_bridge.launcher.tempfile.mkdtemp", return_value=str(profile)),
            patch("headless_bridge.launcher.asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn,
            patch("headless_bridge.launcher.fetch_browser_websocket_url", AsyncMock(return_value=WS_URL)) as fetch,
            patch("headless_bridge.launcher.os.killpg") as killpg,
        ):
            browser = BrowserProcess(config)
            assert await browser.start("http://localhost:8080/_main") == WS_URL
            assert browser.running

            argv = spawn.call_args.args
            assert argv[0] == "chromium"
            assert list(argv[1 : 1 + len(DEFAULT_BROWSER_ARGS)]) == list(DEFAULT_BROWSER_ARGS)
            assert "--mute-audio" in argv
            assert f"--user-data-dir={profile}" in argv
            assert "--remote-debugging-port=9333" in argv
            assert argv[-1] == "http://localhost:8080/_main"
            assert spawn.call_args.kwargs["start_new_session"] is True
            fetch.assert_awaited_once_with(9333)

            await browser.stop()

        killpg.assert_called_once_with(4242, signal.SIGKILL)
        process.wait.assert_awaited_once()
        assert not profile.exists()
        assert not browser.running

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path):
        profile = tmp_path / "profile"
        profile.mkdir()
        with patch("headless_bridge.launcher.tempfile.mkdtemp", return_value=str(profile)):
            browser = BrowserProcess(LaunchConfig(executable=os.fspath(tmp_path / "no-such-browser"), port=9333))
            with pytest.raises(LaunchError, match="could not start"):
                await browser.start()
        assert not profile.exists()

    @pytest.mark.asyncio
    async def test_startup_timeout_kills_process(self, tmp_path):
        process = _fake_process()
        with (
            patch("headless_bridge.launcher.tempfile.mkdtemp", return_value=str(tmp_path)),
            patch("headless_bridge.launcher.asyncio.create_subprocess_exec", AsyncMock(return_value=process)),
            patch("headless_bridge.launcher.fetch_browser_websocket_url", AsyncMock(side_effect=LaunchError("timeout"))),
            patch("headless_bridge.launcher.os.killpg") as killpg,
        ):
            with pytest.raises(LaunchError, match="timeout"):
                await BrowserProcess(LaunchConfig(port=9333)).start()
        killpg.assert_called_once_with(4242, signal.SIGKILL)

    @pytest.mark.asyncio
    async def test_stop_tolerates_exited_group(self, tmp_path):
        process = _fake_process()
        with (
            patch("headless_bridge.launcher.tempfile.mkdtemp", return_value=str(tmp_path / "p")),
            patch("headless_bridge.launcher.asyncio.create_subprocess_exec", AsyncMock(return_value=process)),
            patch("headless_bridge.launcher.fetch_browser_websocket_url", AsyncMock(return_value=WS_URL)),
            patch("headless_bridge.launcher.os.killpg", side_effect=ProcessLookupError),
        ):
            async with BrowserProcess(LaunchConfig(port=9333)) as browser:
                assert browser.websocket_url == WS_URL
        process.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await BrowserProcess(LaunchConfig(port=9333)).stop()
