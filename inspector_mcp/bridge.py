"""
Tool Invocation Bridge: carries a tool call across to the execution
context that holds the real host state.

    ┌──────────────┐   tools/call   ┌──────────┐   (tool, args)   ┌───────────────────┐
    │  Dispatcher  │ ─────────────▶ │  Bridge  │ ───────────────▶ │ ExecutionContext  │
    │ (HTTP side)  │ ◀───────────── │          │ ◀─────────────── │ (host process)    │
    └──────────────┘  ToolCallResult└──────────┘ {result, error}  └───────────────────┘

The context exposes one entry point: given (tool_name, arguments) it
produces {"result": ..., "error": ...} with at most one of them set.
Failures inside a tool come back as "error"; failures of the crossing
itself are raised as BridgeError subclasses so the dispatcher can tell
them apart.

Usage:
    bridge = ToolBridge(default_registry(), [StdioContext(command)], timeout=30)
    await bridge.start()
    outcome = await bridge.invoke("inspect_element", {"selector": "#app"})
    if outcome.ok:
        print(outcome.result)
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from inspector_mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)


# ============================================================
# ERRORS
# ============================================================

class BridgeError(Exception):
    """Base class for failures of the crossing (not of the tool itself)."""


class ToolNotFoundError(BridgeError):
    def __init__(self, tool_name: str, available: Iterable[str] = ()):
        self.tool_name = tool_name
        self.available = list(available)
        super().__init__(f"Unknown tool: '{tool_name}'. Available: {self.available}")


class NoExecutionContextError(BridgeError):
    def __init__(self, message: str = "No execution context available"):
        super().__init__(message)


class MarshalingError(BridgeError):
    """Arguments or a reply could not be represented as JSON."""


class BridgeTimeoutError(BridgeError):
    def __init__(self, tool_name: str, timeout: float):
        self.tool_name = tool_name
        self.timeout = timeout
        super().__init__(f"Tool '{tool_name}' did not complete within {timeout:g}s")


class ExecutionContextError(BridgeError):
    """The execution context failed while carrying the call (died, bad reply)."""


# ============================================================
# ENVELOPE
# ============================================================

@dataclass
class ToolCallResult:
    """The execution context's reply: a result or an error message, never both."""
    result: Any = None
    error: str | None = None

    @classmethod
    def from_dict(cls, reply: Any) -> "ToolCallResult":
        if not isinstance(reply, dict):
            raise ExecutionContextError(
                f"Execution context returned {type(reply).__name__}, expected an object"
            )
        error = reply.get("error")
        if error:
            return cls(result=None, error=str(error))
        return cls(result=reply.get("result"), error=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {"result": self.result, "error": self.error}


# ============================================================
# EXECUTION CONTEXT
# ============================================================

class ExecutionContext(ABC):
    """Abstract collaborator holding the host state the tools operate on."""

    name: str = "context"

    @abstractmethod
    async def call(self, tool_name: str, arguments: dict[str, Any]) -> dict:
        """Run a tool and return {"result": ..., "error": ...}."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Make the context reachable (e.g., launch the host process)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Release the context."""
        ...

    @abstractmethod
    def is_alive(self) -> bool:
        """Check whether the context can accept calls right now."""
        ...


# ============================================================
# BRIDGE
# ============================================================

class ToolBridge:
    """
    Validates and forwards tool calls to the first live execution context.

    The bridge does not sandbox anything: whatever the tool does in the
    host (run code, mutate the DOM) it does with full host privileges.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        contexts: Iterable[ExecutionContext] = (),
        timeout: float | None = None,
    ):
        self.registry = registry
        self.timeout = timeout
        self._contexts: list[ExecutionContext] = list(contexts)

    @property
    def contexts(self) -> list[ExecutionContext]:
        return list(self._contexts)

    def attach(self, context: ExecutionContext) -> None:
        if context not in self._contexts:
            self._contexts.append(context)
            logger.info(f"Attached execution context: {context.name}")

    def detach(self, context: ExecutionContext) -> None:
        if context in self._contexts:
            self._contexts.remove(context)
            logger.info(f"Detached execution context: {context.name}")

    def live_context(self) -> ExecutionContext | None:
        return next((c for c in self._contexts if c.is_alive()), None)

    async def start(self) -> None:
        """Start every attached context."""
        for context in self._contexts:
            await context.start()

    async def stop(self) -> None:
        """Stop every attached context."""
        for context in self._contexts:
            await context.stop()

    async def invoke(self, tool_name: str, arguments: dict[str, Any] | None = None) -> ToolCallResult:
        """
        Invoke a tool in the execution context.

        Raises:
            ToolNotFoundError: tool_name is not in the registry (nothing is sent)
            NoExecutionContextError: no live context to send to
            MarshalingError: arguments are not JSON-representable
            BridgeTimeoutError: the context did not answer within self.timeout
            ExecutionContextError: the crossing itself failed
        """
        if not self.registry.exists(tool_name):
            raise ToolNotFoundError(tool_name, self.registry.names())

        context = self.live_context()
        if context is None:
            raise NoExecutionContextError()

        arguments = {} if arguments is None else arguments
        if not isinstance(arguments, dict):
            raise MarshalingError("Tool arguments must be a JSON object")
        try:
            marshaled = json.loads(json.dumps(arguments))
        except (TypeError, ValueError) as e:
            raise MarshalingError(f"Tool arguments are not JSON-serializable: {e}") from e

        logger.debug(f"Invoking {tool_name} via {context.name}")
        try:
            if self.timeout is None:
                reply = await context.call(tool_name, marshaled)
            else:
                reply = await asyncio.wait_for(context.call(tool_name, marshaled), self.timeout)
        except asyncio.TimeoutError as e:
            raise BridgeTimeoutError(tool_name, self.timeout) from e

        outcome = ToolCallResult.from_dict(reply)
        if not outcome.ok:
            logger.debug(f"Tool {tool_name} reported error: {outcome.error}")
        return outcome
