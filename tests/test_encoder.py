"""Tests for response serialization."""

import json

from src.mcp_transport.encoder import (
    encode_error,
    encode_notification,
    encode_request,
    encode_success,
    fallback_error,
)
from src.mcp_transport.schemas import MCPErrorCodes, RequestId, parse_envelope


def test_ping_response_is_exact():
    request_id = parse_envelope('{"jsonrpc":"2.0","id":1,"method":"ping"}').id
    assert encode_success(request_id, {}) == b'{"jsonrpc":"2.0","id":1,"result":{}}\n'


def test_number_id_literal_preserved():
    """The response id is spelled exactly as the request id was."""
    request_id = parse_envelope('{"jsonrpc":"2.0","id":1.50,"method":"ping"}').id
    assert encode_success(request_id, {}) == b'{"jsonrpc":"2.0","id":1.50,"result":{}}\n'


def test_absent_id_encodes_as_null():
    assert encode_success(RequestId.absent(), {}) == b'{"jsonrpc":"2.0","id":null,"result":{}}\n'


def test_non_ascii_kept_as_utf8():
    encoded = encode_success(RequestId.string("é"), {"text": "ü"})
    assert encoded == '{"jsonrpc":"2.0","id":"é","result":{"text":"ü"}}\n'.encode("utf-8")


def test_error_without_data_omits_field():
    encoded = encode_error(RequestId.number(2), MCPErrorCodes.METHOD_NOT_FOUND, "Tool 'x' not found")
    assert encoded == b'{"jsonrpc":"2.0","id":2,"error":{"code":-32601,"message":"Tool \'x\' not found"}}\n'


def test_error_with_data():
    encoded = encode_error(RequestId.string("r"), MCPErrorCodes.INTERNAL_ERROR, "boom", {"detail": 1})
    message = json.loads(encoded)
    assert message["error"] == {"code": -32603, "message": "boom", "data": {"detail": 1}}


def test_error_without_id_uses_null():
    encoded = encode_error(None, MCPErrorCodes.PARSE_ERROR, "Parse error")
    assert encoded == b'{"jsonrpc":"2.0","id":null,"error":{"code":-32700,"message":"Parse error"}}\n'


def test_unserializable_result_degrades_to_internal_error():
    encoded = encode_success(RequestId.number(3), {"bad": object()})
    message = json.loads(encoded)
    assert message["id"] == 3
    assert message["error"]["code"] == MCPErrorCodes.INTERNAL_ERROR
    assert message["error"]["message"] == "Failed to marshal success response"


def test_unserializable_error_data_uses_fallback():
    encoded = encode_error(RequestId.number(4), MCPErrorCodes.INTERNAL_ERROR, "x", float("nan"))
    assert encoded == fallback_error(RequestId.number(4))
    assert json.loads(encoded)["error"]["message"] == "Gateway error marshalling response"


def test_fallback_is_valid_json():
    message = json.loads(fallback_error())
    assert message == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32603, "message": "Gateway error marshalling response"},
    }


def test_encode_request_without_params():
    encoded = encode_request("tools/list", RequestId.string("x"))
    assert encoded == b'{"jsonrpc":"2.0","method":"tools/list","id":"x"}\n'


def test_encode_request_with_params():
    encoded = encode_request("initialize", RequestId.string("i"), {"protocolVersion": "2024-11-05"})
    assert json.loads(encoded)["params"] == {"protocolVersion": "2024-11-05"}


def test_encode_notification_has_no_id():
    encoded = encode_notification("notifications/initialized")
    assert encoded == b'{"jsonrpc":"2.0","method":"notifications/initialized"}\n'
