# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import headless_bridge  # noqa: F401
except ImportError:
    raise ImportError("headless_bridge is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from tests._fakes import FakeNetwork


@pytest.fixture
def network() -> FakeNetwork:
    """Connector for channels under test; no real sockets are opened."""
    return FakeNetwork()
