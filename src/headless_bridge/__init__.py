# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Headless bridge: drives a page in a headless browser on behalf of a test harness.

- Connection: correlated request/response and notifications over one websocket
- Browser / Page: remote-debugging channels for the browser root and one tab
- Headless: the orchestrator that links the harness, the browser and the page
"""

from __future__ import annotations

from .browser import Browser
from .connection import Connection
from .errors import (
    ChannelFault,
    EvaluationException,
    HeadlessError,
    InvalidStateError,
    ProtocolError,
    RemoteCallError,
    TargetNotFoundError,
)
from .headless import Headless, SessionState
from .messages import Target
from .page import Page

__all__ = [
    "Browser",
    "ChannelFault",
    "Connection",
    "EvaluationException",
    "Headless",
    "HeadlessError",
    "InvalidStateError",
    "Page",
    "ProtocolError",
    "RemoteCallError",
    "SessionState",
    "Target",
    "TargetNotFoundError",
]
