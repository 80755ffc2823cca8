"""
InspectorServer: wires the pieces together behind two lifecycle hooks.

    server = InspectorServer(Settings(port=8787), contexts=[StdioContext(cmd)])
    await server.enable()    # start contexts, bind 127.0.0.1:8787
    ...
    await server.disable()   # release the port, stop contexts

enable() and disable() are what a host application calls from its own
start/stop hooks.
"""

from __future__ import annotations

import logging
from typing import Iterable

from inspector_mcp.bridge import ExecutionContext, ToolBridge
from inspector_mcp.config import Settings
from inspector_mcp.dispatcher import JsonRpcDispatcher
from inspector_mcp.manager import ServerManager, ServerStartError, ServerState
from inspector_mcp.registry import ToolRegistry, default_registry
from inspector_mcp.transport import create_app

logger = logging.getLogger(__name__)


class InspectorServer:
    def __init__(
        self,
        settings: Settings | None = None,
        contexts: Iterable[ExecutionContext] = (),
        registry: ToolRegistry | None = None,
    ):
        self.settings = settings or Settings()
        self.registry = registry or default_registry()
        self.bridge = ToolBridge(self.registry, contexts, timeout=self.settings.call_timeout)
        self.dispatcher = JsonRpcDispatcher(
            self.registry,
            self.bridge,
            server_name=self.settings.service_name,
            server_version=self.settings.version,
        )
        self.manager = ServerManager(self._create_app)

    def _create_app(self):
        return create_app(self.dispatcher, self.settings.service_name, self.settings.version)

    @property
    def state(self) -> ServerState:
        return self.manager.state

    async def enable(self) -> ServerState:
        """Start the execution contexts and the listener, per the current settings."""
        if not self.settings.enabled:
            logger.info("MCP server is disabled")
            return self.manager.state

        self.settings.validate()
        self.bridge.timeout = self.settings.call_timeout
        await self.bridge.start()
        if self.bridge.live_context() is None:
            logger.warning("No execution context is available yet; tools/call will fail until one is")

        try:
            state = await self.manager.start(self.settings.port)
        except ServerStartError as e:
            logger.error(f"Failed to start MCP server: {e}")
            raise
        logger.info(f"MCP server started on {state.url}")
        return state

    async def disable(self) -> ServerState:
        """Stop the listener, then the execution contexts. Safe to call repeatedly."""
        state = await self.manager.stop()
        await self.bridge.stop()
        logger.info("MCP server stopped")
        return state
