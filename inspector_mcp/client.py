"""
Controller-side client for an inspector MCP server.

Usage:
    async with McpHttpClient("http://127.0.0.1:8787") as client:
        await client.initialize()
        tools = await client.list_tools()
        text = await client.call_tool("inspect_element", {"selector": "#app"})
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

import aiohttp

from inspector_mcp.jsonrpc import RpcRequest, RpcResponse

logger = logging.getLogger(__name__)


class McpClientError(Exception):
    """The server answered with a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        detail = f": {data}" if data is not None else ""
        super().__init__(f"{message} ({code}){detail}")


class McpHttpClient:
    def __init__(self, base_url: str, session: aiohttp.ClientSession | None = None):
        self.base_url = base_url.rstrip("/") + "/"
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "McpHttpClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def health(self) -> dict:
        async with self.session.get(self.base_url) as response:
            response.raise_for_status()
            return await response.json()

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its result."""
        rpc = RpcRequest(method=method, params=params or {}, id=next(self._ids))
        logger.debug(f"→ {method} (id={rpc.id})")

        async with self.session.post(
            self.base_url,
            data=rpc.to_json(),
            headers={"Content-Type": "application/json"},
        ) as response:
            response.raise_for_status()
            parsed = await response.json(content_type=None)

        reply = RpcResponse.from_dict(parsed)
        if reply.is_error:
            error = reply.error or {}
            raise McpClientError(error.get("code", 0), error.get("message", ""), error.get("data"))
        return reply.result

    async def initialize(self) -> dict:
        return await self.request("initialize")

    async def list_tools(self) -> list[dict]:
        result = await self.request("tools/list")
        return result.get("tools", [])

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """Call a tool and return the text of its first content item."""
        result = await self.request("tools/call", {"name": name, "arguments": arguments or {}})
        content = result.get("content") or []
        return "\n".join(item.get("text", "") for item in content if item.get("type") == "text")
