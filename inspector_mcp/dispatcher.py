"""
JSON-RPC Dispatcher: turns one decoded request into one response.

Supported methods:
    - "initialize" → server capabilities and identity
    - "tools/list" → the registry's descriptors
    - "tools/call" → runs a tool through the ToolBridge

Every path ends in exactly one response dict that echoes the request id
(null if the request had none).
"""

from __future__ import annotations

import json
import logging
from typing import Any

from inspector_mcp import jsonrpc
from inspector_mcp.bridge import (
    BridgeError,
    NoExecutionContextError,
    ToolBridge,
    ToolNotFoundError,
)
from inspector_mcp.jsonrpc import RpcError, RpcRequest
from inspector_mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)

MCP_PROTOCOL_VERSION = "2024-11-05"


class JsonRpcDispatcher:
    """Routes JSON-RPC requests to the registry and the bridge."""

    def __init__(
        self,
        registry: ToolRegistry,
        bridge: ToolBridge,
        server_name: str,
        server_version: str,
    ):
        self.registry = registry
        self.bridge = bridge
        self.server_name = server_name
        self.server_version = server_version
        self._methods = {
            "initialize": self._initialize,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }

    async def dispatch(self, payload: Any) -> dict:
        """Handle one decoded JSON document and return the response envelope."""
        if not isinstance(payload, dict):
            return jsonrpc.failure(None, jsonrpc.INVALID_REQUEST, data="request must be a JSON object")

        try:
            request = RpcRequest.from_payload(payload)
            handler = self._methods.get(request.method)
            if handler is None:
                raise RpcError(jsonrpc.METHOD_NOT_FOUND, data=f"Unknown method: {request.method}")

            logger.debug(f"Dispatching {request.method} (id={request.id})")
            result = await handler(request.params)
        except RpcError as e:
            return jsonrpc.failure(payload.get("id"), e.code, e.message, e.data)

        return jsonrpc.success(request.id, result)

    @staticmethod
    def parse_error(error: Exception) -> dict:
        """Envelope for a body that could not be decoded (the id is unknown)."""
        return jsonrpc.failure(None, jsonrpc.PARSE_ERROR, data=str(error))

    # ── Methods ───────────────────────────────────────────

    async def _initialize(self, params: Any) -> dict:
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {
                "tools": {},
            },
            "serverInfo": {
                "name": self.server_name,
                "version": self.server_version,
            },
        }

    async def _tools_list(self, params: Any) -> dict:
        return {"tools": [d.to_dict() for d in self.registry.list()]}

    async def _tools_call(self, params: Any) -> dict:
        if not isinstance(params, dict):
            raise RpcError(jsonrpc.INVALID_PARAMS, data="params must be an object")

        name = params.get("name")
        if not name or not isinstance(name, str):
            raise RpcError(jsonrpc.INVALID_PARAMS, data="tool name is required")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RpcError(jsonrpc.INVALID_PARAMS, data="arguments must be an object")

        try:
            outcome = await self.bridge.invoke(name, arguments)
        except ToolNotFoundError as e:
            raise RpcError(jsonrpc.METHOD_NOT_FOUND, data=str(e)) from e
        except NoExecutionContextError as e:
            logger.error(f"Cannot call {name}: {e}")
            raise RpcError(jsonrpc.SERVER_ERROR, data=str(e)) from e
        except BridgeError as e:
            logger.warning(f"Tool call {name} failed in transit: {e}")
            raise RpcError(jsonrpc.SERVER_ERROR, data=str(e)) from e

        if not outcome.ok:
            raise RpcError(jsonrpc.SERVER_ERROR, data=outcome.error)

        return {
            "content": [
                {
                    "type": "text",
                    "text": render_text(outcome.result),
                }
            ]
        }


def render_text(result: Any) -> str:
    """Tool result as content text: strings verbatim, anything else as indented JSON."""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2)
