# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the bridge process.

Console output for interactive runs, JSON lines when a harness collects stderr.
Leaf module: no headless_bridge imports. Safe to call before anything logs.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that trace every frame / request at DEBUG.
NOISY_LOGGERS = ("websockets", "httpx", "httpcore")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure(*, json_output: bool = False, level: str = "INFO", quiet: tuple[str, ...] = NOISY_LOGGERS) -> None:
    """Route stdlib logging through structlog's ProcessorFormatter.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level name; unknown names fall back to INFO.
        quiet: Logger names held at INFO or above even when ``level`` is DEBUG.
    """
    pre_chain = _shared_processors()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in quiet:
        logging.getLogger(name).setLevel(max(root.level, logging.INFO))
