"""
Inspector MCP: host introspection tools over JSON-RPC/HTTP.

Architecture:
    ┌────────────┐   HTTP POST    ┌──────────────┐    stdio / in-process   ┌──────────────┐
    │ Controller │ ─────────────▶ │  MCP server  │ ──────────────────────▶ │     Host     │
    │ (any MCP   │   JSON-RPC     │ 127.0.0.1    │   (tool, arguments)     │ (real state) │
    │  client)   │ ◀───────────── │ :8787        │ ◀────────────────────── │              │
    └────────────┘                └──────────────┘    {result, error}      └──────────────┘

The server side is layered:

    HttpTransport (aiohttp)  →  JsonRpcDispatcher  →  ToolRegistry / ToolBridge
                                                              │
                                                       ExecutionContext

ServerManager binds and releases the listener; InspectorServer wires
everything and exposes enable()/disable() to the host's lifecycle hooks.

Security: there is no authentication. The catalogue includes arbitrary
code execution in the host, and binding to loopback is the only
containment.
"""

__version__ = "1.0.0"

from inspector_mcp.bridge import ToolBridge, ToolCallResult, ExecutionContext
from inspector_mcp.config import Settings
from inspector_mcp.contexts import InProcessContext, StdioContext
from inspector_mcp.dispatcher import JsonRpcDispatcher
from inspector_mcp.host import HostEndpoint, HostToolHandler
from inspector_mcp.manager import ServerManager
from inspector_mcp.registry import ToolDescriptor, ToolRegistry, default_registry
from inspector_mcp.server import InspectorServer

# LangChain adapter requires langchain-core; imported lazily so the server runs without it
def load_langchain_tools(*args, **kwargs):
    from inspector_mcp.langchain_tools import load_langchain_tools as _impl
    return _impl(*args, **kwargs)

__all__ = [
    "ExecutionContext",
    "HostEndpoint",
    "HostToolHandler",
    "InProcessContext",
    "InspectorServer",
    "JsonRpcDispatcher",
    "ServerManager",
    "Settings",
    "StdioContext",
    "ToolBridge",
    "ToolCallResult",
    "ToolDescriptor",
    "ToolRegistry",
    "default_registry",
    "load_langchain_tools",
]
