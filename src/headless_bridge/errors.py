# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Headless bridge exception hierarchy.

Per-call failures (RemoteCallError, EvaluationException) are recoverable and
reach the caller of that one call. ChannelFault means the underlying socket is
gone; it is never turned into a failed call and is not retried.
"""

from __future__ import annotations

import json
from typing import Any


class HeadlessError(Exception):
    """Base exception for all headless bridge errors."""


class RemoteCallError(HeadlessError):
    """The remote side answered a call with an ``error`` object."""

    def __init__(self, method: str, params: dict[str, Any] | None, message: str, code: int) -> None:
        encoded = json.dumps(params, separators=(",", ":"))
        super().__init__(f"{method}({encoded}): {message} ({code})")
        self.method = method
        self.params = params
        self.remote_message = message
        self.code = code


class ChannelFault(HeadlessError):
    """Transport-level failure: the channel could not be opened or was lost."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ProtocolError(ChannelFault):
    """A frame on the channel was not a valid message."""


class EvaluationException(HeadlessError):
    """An expression evaluated in the page threw."""

    def __init__(self, description: str, url: str = "", line_number: int = 0, column_number: int = 0) -> None:
        super().__init__(f"{description}\n    at {url}:{line_number}:{column_number}")
        self.description = description
        self.url = url
        self.line_number = line_number
        self.column_number = column_number


class InvalidStateError(HeadlessError):
    """A control message arrived in a session state where it is not allowed."""


class TargetNotFoundError(HeadlessError):
    """No browser target reports the expected url."""

    def __init__(self, url: str) -> None:
        super().__init__(f"no target with url {url!r}")
        self.url = url


class LaunchError(HeadlessError):
    """The browser process could not be started or never exposed its endpoint."""
