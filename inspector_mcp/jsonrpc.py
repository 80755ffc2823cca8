"""
JSON-RPC 2.0 envelopes.

Only single request/response pairs are supported (no batches). A request
without an id is still answered. Every response carries an "id" key; it
is null when the request id is unknown (parse errors) or was absent.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000

ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    SERVER_ERROR: "Internal error",
}


@dataclass
class RpcRequest:
    """JSON-RPC 2.0 request."""
    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: int | str | None = None
    jsonrpc: str = JSONRPC_VERSION

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RpcRequest":
        """
        Build a request from a decoded JSON object.

        Raises RpcError(INVALID_REQUEST) if the envelope is malformed.
        The id is taken first so the error can echo it.
        """
        request_id = payload.get("id")
        if payload.get("jsonrpc") != JSONRPC_VERSION:
            raise RpcError(INVALID_REQUEST, data="jsonrpc must be '2.0'", id=request_id)

        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise RpcError(INVALID_REQUEST, data="method must be a non-empty string", id=request_id)

        params = payload.get("params")
        if params is None:
            params = {}

        return cls(method=method, params=params, id=request_id)

    def to_dict(self) -> dict:
        return {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
            "params": self.params,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class RpcError(Exception):
    """A protocol-level failure that becomes the "error" member of a response."""

    def __init__(
        self,
        code: int,
        message: str | None = None,
        data: Any = None,
        id: int | str | None = None,
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Server error")
        self.data = data
        self.id = id
        super().__init__(f"{self.code} {self.message}" + (f": {data}" if data is not None else ""))

    def to_dict(self) -> dict:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


@dataclass
class RpcResponse:
    """JSON-RPC 2.0 response. Exactly one of result / error is set."""
    id: int | str | None = None
    result: Any = None
    error: dict | None = None

    @classmethod
    def from_dict(cls, parsed: dict[str, Any]) -> "RpcResponse":
        return cls(
            id=parsed.get("id"),
            result=parsed.get("result"),
            error=parsed.get("error"),
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        response: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            response["error"] = self.error
        else:
            response["result"] = self.result
        return response


def success(request_id: Any, result: Any) -> dict:
    return RpcResponse(id=request_id, result=result).to_dict()


def failure(request_id: Any, code: int, message: str | None = None, data: Any = None) -> dict:
    return RpcResponse(id=request_id, error=RpcError(code, message, data).to_dict()).to_dict()


def from_error(error: RpcError) -> dict:
    return RpcResponse(id=error.id, error=error.to_dict()).to_dict()
