# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Headless bridge CLI: bridge, browser commands.

Usage:
    headless-bridge bridge --page-url URL [--harness-url URL] [--no-attach] [--json-logs]
    headless-bridge browser [--executable PATH] [--port N] [--url URL]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Coroutine
from typing import Any

from .errors import ChannelFault, HeadlessError, LaunchError

logger = logging.getLogger(__name__)


async def _until_signalled(work: Coroutine[Any, Any, None]) -> None:
    """Run ``work``; SIGINT/SIGTERM cancel it so its cleanup still runs."""
    loop = asyncio.get_running_loop()
    task = loop.create_task(work)
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)
    try:
        await task
    except asyncio.CancelledError:
        logger.info("Interrupted, shut down")
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def cmd_bridge(args: argparse.Namespace) -> None:
    """Run the bridge for one page until the harness disconnects."""
    from .config import BridgeConfig
    from .context import HeadlessContext
    from .logging_config import configure as configure_logging

    try:
        config = BridgeConfig.from_env(
            no_attach=args.no_attach,
            page_url=args.page_url,
            harness_url=args.harness_url,
            attach_expression=args.attach,
            log_level=args.log_level,
            json_logs=True if args.json_logs else None,
        )
    except ValueError as e:
        sys.exit(f"headless-bridge bridge: {e}")
    configure_logging(json_output=config.json_logs, level=config.log_level)
    asyncio.run(_until_signalled(HeadlessContext(config).run()))


async def _serve_browser(args: argparse.Namespace) -> None:
    from .launcher import BrowserProcess, LaunchConfig

    config = LaunchConfig(port=args.port)
    if args.executable:
        config.executable = args.executable
    process = BrowserProcess(config)
    try:
        print(await process.start(args.url), flush=True)
        await asyncio.Event().wait()
    finally:
        await process.stop()


def cmd_browser(args: argparse.Namespace) -> None:
    """Launch a browser, print its websocket url, keep it alive until interrupted."""
    from .logging_config import configure as configure_logging

    configure_logging(level=args.log_level or "INFO")
    asyncio.run(_until_signalled(_serve_browser(args)))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bridge a test harness to a headless browser page",
        prog="headless-bridge",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_bridge = subparsers.add_parser(
        "bridge",
        help="Connect a page to its harness and forward console output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
environment:
  HEADLESS_PAGE_URL, HEADLESS_HARNESS_URL, HEADLESS_LOG_LEVEL,
  HEADLESS_JSON_LOGS, HEADLESS_NO_ATTACH (flags take precedence)""",
    )
    p_bridge.add_argument("--page-url", metavar="URL", help="Location of the page this bridge speaks for")
    p_bridge.add_argument("--harness-url", metavar="URL", help="Harness websocket (default: derived from page url)")
    p_bridge.add_argument("--attach", metavar="JS", help="Expression evaluated in the page once connected")
    p_bridge.add_argument("--no-attach", action="store_true", help="Skip the attach expression")
    p_bridge.add_argument("--log-level", metavar="LEVEL", help="Log level (default: INFO)")
    p_bridge.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    p_browser = subparsers.add_parser("browser", help="Launch a browser with remote debugging enabled")
    p_browser.add_argument("--executable", metavar="PATH", help="Browser executable (default: chromium-browser)")
    p_browser.add_argument("--port", type=int, default=0, help="Remote debugging port (default: free port)")
    p_browser.add_argument("--url", default="about:blank", help="Initial url (default: about:blank)")
    p_browser.add_argument("--log-level", metavar="LEVEL", help="Log level (default: INFO)")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    commands = {"bridge": cmd_bridge, "browser": cmd_browser}

    try:
        commands[args.command](args)
    except (ChannelFault, LaunchError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        sys.exit(1)
    except HeadlessError as e:
        logger.error("%s: %s", type(e).__name__, e)
        sys.exit(2)


if __name__ == "__main__":
    main()
