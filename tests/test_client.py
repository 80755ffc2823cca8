"""Tests for the controller-side client and the LangChain adapter."""
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from conftest import FakeContext
from inspector_mcp.bridge import ToolBridge
from inspector_mcp.client import McpClientError, McpHttpClient
from inspector_mcp.dispatcher import JsonRpcDispatcher
from inspector_mcp.langchain_tools import describe_tool, load_langchain_tools, mcp_to_langchain_tool
from inspector_mcp.transport import create_app


def reply_for(tool_name, arguments):
    if tool_name == "get_store" and arguments.get("storeName") == "UserStore":
        return {"result": {"name": "UserStore", "available": True}, "error": None}
    if tool_name == "evaluate_javascript":
        return {"result": "evaluated", "error": None}
    return {"result": None, "error": f"Store '{arguments.get('storeName')}' not found"}


@pytest_asyncio.fixture
async def client(registry):
    bridge = ToolBridge(registry, [FakeContext(reply=reply_for)])
    dispatcher = JsonRpcDispatcher(registry, bridge, "inspector-mcp", "1.0.0")
    server = TestServer(create_app(dispatcher, "inspector-mcp", "1.0.0"))
    await server.start_server()
    client = McpHttpClient(str(server.make_url("/")))
    yield client
    await client.close()
    await server.close()


@pytest.mark.asyncio
async def test_health(client):
    assert (await client.health())["status"] == "ok"


@pytest.mark.asyncio
async def test_initialize(client):
    result = await client.initialize()
    assert result["serverInfo"] == {"name": "inspector-mcp", "version": "1.0.0"}


@pytest.mark.asyncio
async def test_list_tools(client, registry):
    tools = await client.list_tools()
    assert [t["name"] for t in tools] == registry.names()


@pytest.mark.asyncio
async def test_call_tool_returns_text(client):
    text = await client.call_tool("get_store", {"storeName": "UserStore"})
    assert '"available": true' in text


@pytest.mark.asyncio
async def test_call_tool_error_raises(client):
    with pytest.raises(McpClientError) as excinfo:
        await client.call_tool("get_store", {"storeName": "Ghost"})
    assert excinfo.value.code == -32000
    assert excinfo.value.data == "Store 'Ghost' not found"


@pytest.mark.asyncio
async def test_unknown_method_raises(client):
    with pytest.raises(McpClientError) as excinfo:
        await client.request("prompts/list")
    assert excinfo.value.code == -32601


@pytest.mark.asyncio
async def test_langchain_tools_proxy_calls(client):
    tools = {t.name: t for t in await load_langchain_tools(client)}
    assert list(tools) == [
        "evaluate_javascript",
        "get_store",
        "get_store_method",
        "find_webpack_module",
        "find_variable",
        "inspect_element",
    ]

    assert await tools["evaluate_javascript"].ainvoke({"code": "return 1"}) == "evaluated"
    assert "Store 'Ghost' not found" in await tools["get_store"].ainvoke({"storeName": "Ghost"})


@pytest.mark.asyncio
async def test_langchain_description_override(client):
    schema = (await client.list_tools())[0]
    tool = mcp_to_langchain_tool(client, schema, description_override="Run code in the host")
    assert tool.description == "Run code in the host"


def test_describe_tool(registry):
    text = describe_tool(registry.get("get_store_method").to_dict())
    assert text.startswith("## Tool: get_store_method")
    assert "  - storeName (string): Name of the store" in text
    assert "  - args (array, optional): Arguments to pass to the method" in text
