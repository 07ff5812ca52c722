"""Tests for JSON-RPC message classification and error objects."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lspwire.messages import (
    ErrorCodes,
    InvalidMessage,
    Notification,
    Request,
    Response,
    ResponseError,
    classify,
)


class TestClassify:
    """Shape-based classification in priority order."""

    def test_request(self) -> None:
        msg = classify({"jsonrpc": "2.0", "id": 5, "method": "workspace/configuration", "params": {"items": []}})
        assert msg == Request(id=5, method="workspace/configuration", params={"items": []})

    def test_request_wins_over_response_shape(self) -> None:
        """method + id is a request even if a result key is present."""
        msg = classify({"id": 1, "method": "x", "result": 3})
        assert isinstance(msg, Request)

    def test_response_with_result(self) -> None:
        assert classify({"jsonrpc": "2.0", "id": 1, "result": {}}) == Response(id=1, result={})

    def test_response_with_null_result(self) -> None:
        msg = classify({"id": 2, "result": None})
        assert msg == Response(id=2, result=None, error=None)

    def test_response_with_error(self) -> None:
        msg = classify({"id": 3, "error": {"code": -32601, "message": "nope"}})

        assert isinstance(msg, Response)
        assert msg.error is not None
        assert msg.error.code == ErrorCodes.MethodNotFound
        assert msg.error.message == "nope"
        assert msg.result is None

    def test_response_with_null_error_is_success(self) -> None:
        msg = classify({"id": 4, "result": [1], "error": None})
        assert msg == Response(id=4, result=[1])

    def test_server_specific_error_code_accepted(self) -> None:
        """Servers may use codes outside the known set; the response still counts."""
        msg = classify({"id": 5, "error": {"code": -32000, "message": "custom"}})
        assert isinstance(msg, Response)
        assert msg.error.code == -32000

    def test_error_without_message_gets_code_name(self) -> None:
        msg = classify({"id": 6, "error": {"code": -32603}})
        assert msg.error.message == "InternalError"

    def test_numeric_string_id_normalized(self) -> None:
        assert classify({"id": "7", "result": 1}).id == 7

    def test_notification(self) -> None:
        msg = classify({"jsonrpc": "2.0", "method": "textDocument/publishDiagnostics", "params": {"diagnostics": []}})
        assert msg == Notification(method="textDocument/publishDiagnostics", params={"diagnostics": []})

    def test_notification_without_params(self) -> None:
        assert classify({"method": "exit"}) == Notification(method="exit")

    @pytest.mark.parametrize(
        "value",
        [
            {"jsonrpc": "2.0"},
            {"id": 1},
            {"method": 42},
            {"id": 1, "error": "boom"},
            {"id": 1, "error": {"message": "no code"}},
            {"id": 1, "error": {"code": True}},
            {"id": [1], "result": {}},
            {"id": {"a": 1}, "result": 1},
            {"id": True, "result": 1},
            {"id": 1.5, "result": 1},
            {"id": [1], "method": "x"},
            [1, 2, 3],
            "text",
            None,
        ],
    )
    def test_invalid(self, value) -> None:
        assert classify(value) == InvalidMessage(value)


class TestResponseError:
    def test_message_defaults_to_code_name(self) -> None:
        error = ResponseError(code=ErrorCodes.InvalidParams)
        assert error.message == "InvalidParams"

    def test_explicit_message_kept(self) -> None:
        assert ResponseError(code=-32603, message="boom").message == "boom"

    def test_unknown_code_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unknown error code"):
            ResponseError(code=12345, message="x")

    def test_to_dict_omits_missing_data(self) -> None:
        assert ResponseError(code=-32601).to_dict() == {"code": -32601, "message": "MethodNotFound"}

    def test_to_dict_includes_data(self) -> None:
        error = ResponseError(code=-32602, message="bad", data={"field": "uri"})
        assert error.to_dict()["data"] == {"field": "uri"}

    def test_str(self) -> None:
        assert str(ResponseError(code=-32800)) == "RequestCancelled: RequestCancelled"


class TestCancellationAck:
    @pytest.mark.parametrize("code", [ErrorCodes.RequestCancelled, ErrorCodes.ContentModified])
    def test_cancellation_codes(self, code) -> None:
        assert classify({"id": 1, "error": {"code": int(code)}}).is_cancellation_ack

    def test_other_errors_are_not_acks(self) -> None:
        assert not classify({"id": 1, "error": {"code": -32603}}).is_cancellation_ack

    def test_success_is_not_ack(self) -> None:
        assert not classify({"id": 1, "result": None}).is_cancellation_ack
