"""Tests for JSON-RPC envelope parsing and rendering."""
import pytest

from inspector_mcp import jsonrpc
from inspector_mcp.jsonrpc import RpcError, RpcRequest, RpcResponse


def test_request_defaults_missing_params():
    request = RpcRequest.from_payload({"jsonrpc": "2.0", "id": 3, "method": "tools/list"})
    assert request.params == {}
    assert request.id == 3


@pytest.mark.parametrize("payload", [
    {"jsonrpc": "1.0", "id": 4, "method": "tools/list"},
    {"id": 4, "method": "tools/list"},
    {"jsonrpc": "2.0", "id": 4, "method": ""},
    {"jsonrpc": "2.0", "id": 4, "method": 12},
])
def test_malformed_request_keeps_id(payload):
    with pytest.raises(RpcError) as excinfo:
        RpcRequest.from_payload(payload)
    assert excinfo.value.code == jsonrpc.INVALID_REQUEST
    assert jsonrpc.from_error(excinfo.value)["id"] == 4


def test_success_has_no_error_member():
    assert jsonrpc.success(1, {"tools": []}) == {"jsonrpc": "2.0", "id": 1, "result": {"tools": []}}


def test_success_keeps_null_result():
    assert jsonrpc.success(None, None) == {"jsonrpc": "2.0", "id": None, "result": None}


def test_failure_has_no_result_member():
    response = jsonrpc.failure(None, jsonrpc.SERVER_ERROR, data="boom")
    assert response == {
        "jsonrpc": "2.0",
        "id": None,
        "error": {"code": -32000, "message": "Internal error", "data": "boom"},
    }


def test_failure_omits_absent_data():
    assert "data" not in jsonrpc.failure(2, jsonrpc.METHOD_NOT_FOUND)["error"]


def test_response_from_dict():
    reply = RpcResponse.from_dict({"jsonrpc": "2.0", "id": 9, "error": {"code": -32601, "message": "Method not found"}})
    assert reply.is_error
    assert reply.id == 9


def test_request_to_dict():
    request = RpcRequest(method="tools/call", params={"name": "get_store"}, id=5)
    assert request.to_dict() == {
        "jsonrpc": "2.0",
        "id": 5,
        "method": "tools/call",
        "params": {"name": "get_store"},
    }
