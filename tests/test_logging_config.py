# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for headless_bridge.logging_config — structlog + stdlib bridge."""

from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog

from headless_bridge.logging_config import NOISY_LOGGERS, configure


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    old_quiet = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    for name, level in old_quiet.items():
        logging.getLogger(name).setLevel(level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    """Interactive runs: human-readable output."""

    def test_single_stderr_handler(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.console").info("hello world")
        captured = capsys.readouterr()
        assert "hello world" in captured.err
        assert not captured.err.strip().startswith("{")

    def test_includes_level(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.level").warning("test warn")
        assert "warn" in capsys.readouterr().err.lower()


class TestJSONRenderer:
    """Harness-collected runs: one JSON object per line."""

    def test_output_is_valid_json(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.json").info("json test")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "json test"
        assert record["level"] == "info"
        assert record["logger"] == "test.json"
        assert "timestamp" in record

    def test_percent_args_are_rendered(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.args").info("Closed %d target(s)", 2)
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "Closed 2 target(s)"

    def test_exception_info_included(self, capsys):
        configure(json_output=True)
        try:
            raise ValueError("boom")
        except ValueError:
            logging.getLogger("test.exc").exception("failed")
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "ValueError: boom" in record["exception"]


class TestLevels:
    def test_level_name(self):
        configure(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_noisy_loggers_held_at_info(self):
        configure(level="DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.INFO

    def test_noisy_loggers_follow_stricter_root(self):
        configure(level="WARNING")
        assert logging.getLogger("websockets").level == logging.WARNING

    def test_reconfigure_replaces_handler(self):
        configure()
        configure(json_output=True)
        assert len(logging.getLogger().handlers) == 1
