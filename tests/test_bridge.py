"""Tests for the tool invocation bridge."""
import asyncio

import pytest

from conftest import FakeContext
from inspector_mcp.bridge import (
    BridgeTimeoutError,
    ExecutionContextError,
    MarshalingError,
    NoExecutionContextError,
    ToolBridge,
    ToolCallResult,
    ToolNotFoundError,
)


@pytest.mark.asyncio
async def test_invoke_forwards_to_live_context(registry):
    context = FakeContext(reply={"result": {"found": True}, "error": None})
    bridge = ToolBridge(registry, [context])

    outcome = await bridge.invoke("inspect_element", {"selector": "#app"})

    assert outcome.ok
    assert outcome.result == {"found": True}
    assert context.calls == [("inspect_element", {"selector": "#app"})]


@pytest.mark.asyncio
async def test_unknown_tool_never_reaches_context(registry):
    context = FakeContext()
    bridge = ToolBridge(registry, [context])

    with pytest.raises(ToolNotFoundError) as excinfo:
        await bridge.invoke("drop_database", {})

    assert excinfo.value.tool_name == "drop_database"
    assert context.calls == []


@pytest.mark.asyncio
async def test_unknown_tool_checked_before_context_availability(registry):
    bridge = ToolBridge(registry, [])
    with pytest.raises(ToolNotFoundError):
        await bridge.invoke("drop_database", {})


@pytest.mark.asyncio
async def test_no_context_attached(registry):
    bridge = ToolBridge(registry, [])
    with pytest.raises(NoExecutionContextError):
        await bridge.invoke("get_store", {"storeName": "UserStore"})


@pytest.mark.asyncio
async def test_dead_contexts_are_skipped(registry):
    dead = FakeContext(alive=False)
    live = FakeContext(reply={"result": "ok", "error": None})
    bridge = ToolBridge(registry, [dead, live])

    outcome = await bridge.invoke("get_store", {"storeName": "UserStore"})

    assert outcome.result == "ok"
    assert dead.calls == []
    assert len(live.calls) == 1


@pytest.mark.asyncio
async def test_all_contexts_dead(registry):
    context = FakeContext(alive=False)
    bridge = ToolBridge(registry, [context])
    with pytest.raises(NoExecutionContextError):
        await bridge.invoke("get_store", {"storeName": "UserStore"})
    assert context.calls == []


@pytest.mark.asyncio
async def test_tool_error_is_returned_not_raised(registry):
    context = FakeContext(reply={"result": None, "error": "Store 'Nope' not found"})
    bridge = ToolBridge(registry, [context])

    outcome = await bridge.invoke("get_store", {"storeName": "Nope"})

    assert not outcome.ok
    assert outcome.error == "Store 'Nope' not found"
    assert outcome.result is None


@pytest.mark.asyncio
async def test_non_serializable_arguments_rejected(registry):
    context = FakeContext()
    bridge = ToolBridge(registry, [context])
    cyclic = {}
    cyclic["self"] = cyclic

    with pytest.raises(MarshalingError):
        await bridge.invoke("evaluate_javascript", {"code": "return 1", "extra": cyclic})
    with pytest.raises(MarshalingError):
        await bridge.invoke("evaluate_javascript", {"code": print})
    assert context.calls == []


@pytest.mark.asyncio
async def test_arguments_default_to_empty_object(registry):
    context = FakeContext()
    bridge = ToolBridge(registry, [context])
    await bridge.invoke("find_webpack_module")
    assert context.calls == [("find_webpack_module", {})]


@pytest.mark.asyncio
async def test_non_object_arguments_rejected(registry):
    bridge = ToolBridge(registry, [FakeContext()])
    with pytest.raises(MarshalingError):
        await bridge.invoke("find_webpack_module", ["props"])


@pytest.mark.asyncio
async def test_timeout_bounds_the_wait(registry):
    context = FakeContext(delay=5.0)
    bridge = ToolBridge(registry, [context], timeout=0.05)

    with pytest.raises(BridgeTimeoutError) as excinfo:
        await bridge.invoke("evaluate_javascript", {"code": "while True: pass"})
    assert excinfo.value.timeout == 0.05


@pytest.mark.asyncio
async def test_malformed_reply_is_a_context_error(registry):
    bridge = ToolBridge(registry, [FakeContext(reply=["not", "an", "object"])])
    with pytest.raises(ExecutionContextError):
        await bridge.invoke("get_store", {"storeName": "UserStore"})


@pytest.mark.asyncio
async def test_attach_detach_and_lifecycle(registry):
    context = FakeContext(alive=False)
    bridge = ToolBridge(registry)
    assert bridge.live_context() is None

    bridge.attach(context)
    bridge.attach(context)
    assert bridge.contexts == [context]

    await bridge.start()
    assert bridge.live_context() is context
    await bridge.stop()
    assert context.stopped == 1

    bridge.detach(context)
    assert bridge.contexts == []


@pytest.mark.asyncio
async def test_concurrent_invocations_do_not_block_each_other(registry):
    slow = FakeContext(delay=0.2, reply={"result": "done", "error": None})
    bridge = ToolBridge(registry, [slow])

    results = await asyncio.wait_for(
        asyncio.gather(*[bridge.invoke("get_store", {"storeName": str(i)}) for i in range(5)]),
        timeout=1.0,
    )
    assert [r.result for r in results] == ["done"] * 5


def test_tool_call_result_error_wins():
    outcome = ToolCallResult.from_dict({"result": 1, "error": "boom"})
    assert outcome.result is None
    assert outcome.error == "boom"
    assert outcome.to_dict() == {"result": None, "error": "boom"}


@pytest.mark.asyncio
async def test_empty_error_string_counts_as_success(registry):
    bridge = ToolBridge(registry, [FakeContext(reply={"result": "ok", "error": ""})])
    outcome = await bridge.invoke("get_store", {"storeName": "UserStore"})
    assert outcome.ok
    assert outcome.result == "ok"


def test_tool_call_result_missing_members():
    outcome = ToolCallResult.from_dict({})
    assert outcome.ok
    assert outcome.result is None
