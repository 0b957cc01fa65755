"""Tests for wire record validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from headless_bridge.messages import (
    ConnectParams,
    ConsoleAPICalled,
    Envelope,
    EvaluateResult,
    GetTargetsResult,
)


class TestEnvelope:
    def test_response(self):
        env = Envelope.model_validate_json('{"id": 3, "result": {"targetId": "T"}}')
        assert (env.id, env.method, env.result, env.error) == (3, None, {"targetId": "T"}, None)

    def test_error_response(self):
        env = Envelope.model_validate_json('{"id": 4, "error": {"code": -32601, "message": "not found"}}')
        assert env.error.code == -32601
        assert env.error.message == "not found"

    def test_notification_defaults_params(self):
        env = Envelope.model_validate_json('{"method": "Runtime.executionContextsCleared"}')
        assert env.id is None
        assert env.params == {}

    @pytest.mark.parametrize("frame", ["not json", "[1, 2]", '{"id": "seven"}', '{"params": 5}'])
    def test_invalid_frames(self, frame):
        with pytest.raises(ValidationError):
            Envelope.model_validate_json(frame)


class TestParams:
    def test_connect_params_wire_name(self):
        params = ConnectParams.model_validate({"browserWebsocketUrl": "ws://127.0.0.1:9222/devtools/browser/x"})
        assert params.browser_websocket_url == "ws://127.0.0.1:9222/devtools/browser/x"

    def test_connect_params_required(self):
        with pytest.raises(ValidationError):
            ConnectParams.model_validate({})

    def test_unknown_fields_ignored(self):
        result = GetTargetsResult.model_validate(
            {"targetInfos": [{"targetId": "A", "type": "page", "url": "about:blank", "attached": True}]}
        )
        assert result.target_infos[0].target_id == "A"

    def test_console_call(self):
        call = ConsoleAPICalled.model_validate(
            {"type": "log", "args": [{"type": "string", "value": "x"}], "executionContextId": 1, "timestamp": 5.5}
        )
        assert call.type == "log"
        assert call.args[0].value == "x"

    def test_evaluate_result_without_exception(self):
        result = EvaluateResult.model_validate({"result": {"type": "number", "value": 2, "description": "2"}})
        assert result.exception_details is None
        assert result.result.value == 2
