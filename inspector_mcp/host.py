"""
Host side of the bridge: the execution context's single entry point.

A host process (or the current process, for InProcessContext) builds a
HostEndpoint, registers one HostToolHandler per tool, and publishes it:

    from inspector_mcp.host import HostEndpoint, HostToolHandler, serve_stdio

    class GetStore(HostToolHandler):
        name = "get_store"

        def handle(self, arguments: dict) -> dict:
            return {"name": arguments["storeName"], "available": True}

    if __name__ == "__main__":
        endpoint = HostEndpoint()
        endpoint.register(GetStore())
        serve_stdio(endpoint)

Whatever a handler raises is caught here and reported as the "error"
member of the reply; it never reaches the transport as an exception.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO

logger = logging.getLogger(__name__)


class HostToolHandler(ABC):
    """
    Base class for a tool implementation living in the host.

    handle() may be a plain function or a coroutine function.
    """

    # Subclasses must set this
    name: str = ""

    @abstractmethod
    def handle(self, arguments: dict[str, Any]) -> Any:
        """
        Execute the tool.

        Args:
            arguments: Dict of parameter name → value, already JSON-decoded

        Returns:
            A JSON-serializable result (None is allowed)
        """
        ...


class HostEndpoint:
    """Routes (tool_name, arguments) to a registered handler and wraps the outcome."""

    def __init__(self):
        self._handlers: dict[str, HostToolHandler] = {}

    def register(self, handler: HostToolHandler) -> None:
        """Register a tool handler."""
        if not handler.name:
            raise ValueError(f"HostToolHandler {handler.__class__.__name__} has no name")
        self._handlers[handler.name] = handler
        logger.debug(f"Registered host tool: {handler.name}")

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers.keys())

    async def handle_tool(self, tool_name: str, arguments: dict[str, Any] | None) -> dict:
        """Run a tool; returns {"result": ..., "error": None} or {"result": None, "error": "..."}."""
        try:
            handler = self._handlers.get(tool_name)
            if handler is None:
                raise LookupError(f"Unknown tool: {tool_name}")

            result = handler.handle(arguments or {})
            if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
                result = await result

            # The reply must survive the crossing; check it here so a bad
            # value turns into a tool error instead of a transport failure.
            json.dumps(result)
            return {"result": result, "error": None}
        except Exception as e:
            logger.error(f"Tool execution error for {tool_name}: {e}", exc_info=True)
            return {"result": None, "error": _describe(e)}


def _describe(error: BaseException) -> str:
    message = str(error)
    if isinstance(error, KeyError) and error.args:
        message = f"Missing key: {error.args[0]}"
    return message or error.__class__.__name__


# ============================================================
# STDIO LOOP
# ============================================================

def serve_stdio(
    endpoint: HostEndpoint,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> None:
    """
    Main loop of a host process: one JSON request per stdin line,
    one JSON reply per stdout line.

    Request:  {"id": 7, "tool": "get_store", "arguments": {...}}
    Reply:    {"id": 7, "result": ..., "error": null}

    Blocks until stdin is closed (the server process went away).
    """
    asyncio.run(serve_stdio_async(endpoint, stdin or sys.stdin, stdout or sys.stdout))


async def serve_stdio_async(endpoint: HostEndpoint, stdin: TextIO, stdout: TextIO) -> None:
    loop = asyncio.get_running_loop()
    pending: set[asyncio.Task] = set()

    logger.info(f"Host endpoint serving {len(endpoint.tool_names)} tools: {endpoint.tool_names}")

    while True:
        line = await loop.run_in_executor(None, stdin.readline)
        if not line:
            break
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
            if not isinstance(request, dict):
                raise ValueError("request must be a JSON object")
        except ValueError as e:
            _write_reply(stdout, {"id": None, "result": None, "error": f"Parse error: {e}"})
            continue

        task = asyncio.create_task(_answer(endpoint, request, stdout))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


async def _answer(endpoint: HostEndpoint, request: dict, stdout: TextIO) -> None:
    reply = await endpoint.handle_tool(request.get("tool", ""), request.get("arguments"))
    reply["id"] = request.get("id")
    _write_reply(stdout, reply)


def _write_reply(stdout: TextIO, reply: dict) -> None:
    stdout.write(json.dumps(reply) + "\n")
    stdout.flush()
