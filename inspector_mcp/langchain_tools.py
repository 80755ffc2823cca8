"""
Bridge between an inspector MCP server and LangChain.

Turns the server's tool catalogue into LangChain tools a controller
agent can call, without the agent knowing anything about the host.

Usage:
    from inspector_mcp.client import McpHttpClient
    from inspector_mcp.langchain_tools import load_langchain_tools

    async with McpHttpClient("http://127.0.0.1:8787") as client:
        tools = await load_langchain_tools(client)
        agent = create_agent(model, tools)
"""

from __future__ import annotations

from typing import Any

from langchain_core.tools import StructuredTool

from inspector_mcp.client import McpClientError, McpHttpClient


def mcp_to_langchain_tool(
    client: McpHttpClient,
    tool_schema: dict,
    description_override: str | None = None,
) -> StructuredTool:
    """
    Create a LangChain StructuredTool that proxies to one server tool.

    Args:
        client: Client connected to the server
        tool_schema: Descriptor from tools/list ({name, description, inputSchema})
        description_override: Optional override for the tool description

    Returns:
        A StructuredTool whose coroutine sends a tools/call request. Errors
        come back as text so the agent can read them.
    """
    tool_name = tool_schema["name"]
    description = description_override or tool_schema.get("description") or f"MCP tool: {tool_name}"

    async def _call_mcp(**kwargs: Any) -> str:
        """Proxy call to the MCP server."""
        try:
            return await client.call_tool(tool_name, kwargs)
        except McpClientError as e:
            return f"Error calling {tool_name}: {e}"

    return StructuredTool.from_function(
        coroutine=_call_mcp,
        name=tool_name,
        description=description,
        args_schema=tool_schema.get("inputSchema") or {"type": "object", "properties": {}},
    )


async def load_langchain_tools(client: McpHttpClient) -> list[StructuredTool]:
    """Discover every tool on the server and wrap each one."""
    return [mcp_to_langchain_tool(client, schema) for schema in await client.list_tools()]


def describe_tool(schema: dict) -> str:
    """Prompt-ready description of a tool from its schema."""
    name = schema.get("name", "unknown")
    description = schema.get("description", "")
    params = schema.get("inputSchema", {}).get("properties", {})
    required = set(schema.get("inputSchema", {}).get("required", []))

    lines = [f"## Tool: {name}", description, ""]
    if params:
        lines.append("Parameters:")
        for pname, pinfo in params.items():
            ptype = pinfo.get("type", "any")
            pdesc = pinfo.get("description", "")
            marker = "" if pname in required else ", optional"
            lines.append(f"  - {pname} ({ptype}{marker}): {pdesc}")

    return "\n".join(lines)
