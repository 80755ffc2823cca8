"""
HTTP transport: JSON-RPC over HTTP POST, served by aiohttp.

    OPTIONS *        → 200, empty (CORS preflight)
    GET /            → 200, health descriptor
    POST <any path>  → 200, JSON-RPC response envelope
    anything else    → 200, JSON-RPC "Invalid Request" envelope

The HTTP status is always 200; success or failure travels inside the
JSON envelope. The server binds to loopback only: whoever can reach the
port can run any tool, so the bind address is the containment.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

from inspector_mcp import jsonrpc
from inspector_mcp.dispatcher import JsonRpcDispatcher

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
PROTOCOL_NAME = "MCP over HTTP"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def json_response(data: Any) -> web.Response:
    return web.Response(
        status=200,
        text=json.dumps(data),
        content_type="application/json",
        headers=CORS_HEADERS,
    )


class HttpTransport:
    """aiohttp request handler in front of a JsonRpcDispatcher."""

    def __init__(self, dispatcher: JsonRpcDispatcher, service_name: str, version: str):
        self.dispatcher = dispatcher
        self.service_name = service_name
        self.version = version

    async def handle(self, request: web.Request) -> web.StreamResponse:
        logger.debug(f"{request.method} {request.path_qs}")

        if request.method == "OPTIONS":
            return web.Response(status=200, headers=CORS_HEADERS)

        if request.method == "GET" and request.path in ("", "/"):
            return json_response({
                "status": "ok",
                "service": self.service_name,
                "version": self.version,
                "protocol": PROTOCOL_NAME,
            })

        if request.method != "POST":
            return json_response(jsonrpc.failure(
                None, jsonrpc.INVALID_REQUEST, data="Only POST method is allowed",
            ))

        body = await read_body(request)
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.debug(f"Unparseable request body: {e}")
            return json_response(self.dispatcher.parse_error(e))

        try:
            response = await self.dispatcher.dispatch(payload)
        except Exception as e:
            logger.exception(f"Unhandled error while dispatching: {e}")
            request_id = payload.get("id") if isinstance(payload, dict) else None
            response = jsonrpc.failure(request_id, jsonrpc.SERVER_ERROR, data=str(e))

        try:
            return json_response(response)
        except (TypeError, ValueError) as e:
            logger.error(f"Response is not JSON-serializable: {e}")
            return json_response(jsonrpc.failure(
                response.get("id"), jsonrpc.SERVER_ERROR, data=f"Response is not JSON-serializable: {e}",
            ))


async def read_body(request: web.Request) -> bytes:
    """Collect the full request body; decoding starts only once the stream ends."""
    chunks = []
    async for chunk in request.content.iter_any():
        chunks.append(chunk)
    return b"".join(chunks)


def create_app(dispatcher: JsonRpcDispatcher, service_name: str, version: str) -> web.Application:
    """Application with a single catch-all route."""
    transport = HttpTransport(dispatcher, service_name, version)
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", transport.handle)
    return app
