# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Reduce remote objects to the small JSON values the harness receives."""

from __future__ import annotations

from typing import Any

from .messages import ExceptionDetails, RemoteObject

# Types whose RemoteObject carries the actual value.
_PRIMITIVE_TYPES = frozenset({"string", "number", "boolean", "undefined"})


def _preview_value(value: str | None) -> str:
    # Previews omit ``value`` for undefined, which renders as an empty slot.
    return "" if value is None else value


def format_console_arg(arg: RemoteObject) -> Any:
    """Format one console call argument.

    Primitives and ``null`` pass through as their raw value, functions and
    regexps become their description, arrays and other objects are rendered
    from their preview as ``[v1, v2]`` and ``{k1: v1, k2: v2}``.
    """
    if arg.type in _PRIMITIVE_TYPES or arg.subtype == "null":
        # NaN, Infinity and -0 are only available as unserializableValue
        if arg.value is None and arg.unserializable_value is not None:
            return arg.unserializable_value
        return arg.value
    if arg.type == "bigint":
        return arg.unserializable_value
    if arg.type == "function" or arg.subtype == "regexp":
        return arg.description

    properties = arg.preview.properties if arg.preview is not None else []
    if arg.subtype == "array":
        return "[" + ", ".join(_preview_value(p.value) for p in properties) + "]"
    return "{" + ", ".join(f"{p.name}: {_preview_value(p.value)}" for p in properties) + "}"


def describe_exception(details: ExceptionDetails) -> str:
    """The thrown value's description, or the summary text when nothing was thrown."""
    if details.exception is not None and details.exception.description is not None:
        return details.exception.description
    return details.text


def format_exception_details(details: ExceptionDetails) -> str:
    """Render an exception as ``<description>\\n    at <url>:<line>:<column>``."""
    return f"{describe_exception(details)}\n    at {details.url}:{details.line_number}:{details.column_number}"
