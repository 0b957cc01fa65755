# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Bridge configuration from environment variables and CLI overrides."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from urllib.parse import urlsplit

from .headless import DEFAULT_ATTACH_EXPRESSION

ENV_PREFIX = "HEADLESS_"
_TRUTHY = ("1", "true", "yes")


def harness_url_for(page_url: str) -> str:
    """Harness endpoint served alongside the page: same host and path, websocket scheme."""
    parts = urlsplit(page_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    return f"{scheme}://{parts.netloc}{parts.path}"


@dataclasses.dataclass(frozen=True, slots=True, kw_only=True)
class BridgeConfig:
    """Settings for one bridge process.

    ``page_url`` is the location of the page this bridge speaks for; it
    identifies the page's own browser target and is reported as ``url`` on
    every forwarded event.
    """

    page_url: str
    harness_url: str = ""
    attach_expression: str | None = DEFAULT_ATTACH_EXPRESSION
    log_level: str = "INFO"
    json_logs: bool = False

    def __post_init__(self) -> None:
        if not self.page_url:
            raise ValueError("page_url is required")
        if not self.harness_url:
            object.__setattr__(self, "harness_url", harness_url_for(self.page_url))

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        no_attach: bool = False,
        **overrides,
    ) -> BridgeConfig:
        """Build from ``HEADLESS_*`` variables; non-None ``overrides`` win.

        ``no_attach`` (or ``HEADLESS_NO_ATTACH``) disables the attach
        expression regardless of any override.
        """
        env = os.environ if environ is None else environ
        values: dict = {
            "page_url": env.get(f"{ENV_PREFIX}PAGE_URL", "").strip(),
            "harness_url": env.get(f"{ENV_PREFIX}HARNESS_URL", "").strip(),
            "log_level": env.get(f"{ENV_PREFIX}LOG_LEVEL", "").strip() or "INFO",
            "json_logs": env.get(f"{ENV_PREFIX}JSON_LOGS", "").strip().lower() in _TRUTHY,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if no_attach or env.get(f"{ENV_PREFIX}NO_ATTACH", "").strip().lower() in _TRUTHY:
            values["attach_expression"] = None
        return cls(**values)
