# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Wire records for the harness channel and the remote-debugging channels.

Every inbound frame is validated into an ``Envelope`` before it is routed.
Params and results that the bridge actually reads get their own models so a
missing field fails at the boundary instead of surfacing later as ``None``.
Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ControlMethod(StrEnum):
    """Messages the harness sends to the bridge."""

    CONNECT = "connect"
    OPEN = "open"
    CLOSE = "close"


class HarnessEvent(StrEnum):
    """Fixed event names the bridge sends to the harness.

    Console events are named after the console method (``log``, ``warn``, ...)
    and are not listed here.
    """

    CONNECT = "connect"
    EXCEPTION = "exception"
    CLOSE = "close"


class Command(StrEnum):
    """Remote-debugging commands the bridge issues."""

    GET_TARGETS = "Target.getTargets"
    CREATE_TARGET = "Target.createTarget"
    CLOSE_TARGET = "Target.closeTarget"
    NAVIGATE = "Page.navigate"
    RUNTIME_ENABLE = "Runtime.enable"
    EVALUATE = "Runtime.evaluate"


class Event(StrEnum):
    """Remote-debugging notifications the bridge consumes."""

    CONSOLE_API_CALLED = "Runtime.consoleAPICalled"
    EXCEPTION_THROWN = "Runtime.exceptionThrown"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Envelope ─────────────────────────────────────────────────────────


class RemoteError(WireModel):
    message: str = ""
    code: int = 0


class Envelope(WireModel):
    """Request, response or notification: classified by ``id`` and ``method``."""

    id: int | None = None
    method: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: RemoteError | None = None


# ── Harness control params ───────────────────────────────────────────


class ConnectParams(WireModel):
    browser_websocket_url: str


class OpenParams(WireModel):
    url: str


# ── Targets ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Target:
    """A browser tab opened (and owned) by a Browser."""

    target_id: str
    url: str


class TargetInfo(WireModel):
    target_id: str
    url: str = ""
    type: str = ""
    title: str = ""


class GetTargetsResult(WireModel):
    target_infos: list[TargetInfo] = Field(default_factory=list)


class CreateTargetResult(WireModel):
    target_id: str


# ── Runtime ──────────────────────────────────────────────────────────


class PropertyPreview(WireModel):
    name: str = ""
    type: str = ""
    subtype: str | None = None
    value: str | None = None


class ObjectPreview(WireModel):
    type: str = ""
    subtype: str | None = None
    description: str | None = None
    properties: list[PropertyPreview] = Field(default_factory=list)


class RemoteObject(WireModel):
    type: str
    subtype: str | None = None
    class_name: str | None = None
    value: Any = None
    unserializable_value: str | None = None
    description: str | None = None
    preview: ObjectPreview | None = None


class ExceptionDetails(WireModel):
    exception_id: int = 0
    text: str = ""
    line_number: int = 0
    column_number: int = 0
    url: str = ""
    exception: RemoteObject | None = None


class ConsoleAPICalled(WireModel):
    type: str
    args: list[RemoteObject] = Field(default_factory=list)
    timestamp: float = 0.0


class ExceptionThrown(WireModel):
    timestamp: float = 0.0
    exception_details: ExceptionDetails


class EvaluateResult(WireModel):
    result: RemoteObject
    exception_details: ExceptionDetails | None = None
