"""Shared pytest fixtures for all tests."""
import asyncio
import os
import sys

import pytest

from inspector_mcp.bridge import ExecutionContext, ToolBridge
from inspector_mcp.dispatcher import JsonRpcDispatcher
from inspector_mcp.registry import default_registry

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class FakeContext(ExecutionContext):
    """Execution context that records calls and answers with a canned reply."""

    name = "fake"

    def __init__(self, reply=None, alive=True, delay=0.0):
        self.reply = {"result": None, "error": None} if reply is None else reply
        self.alive = alive
        self.delay = delay
        self.calls = []
        self.started = 0
        self.stopped = 0

    async def call(self, tool_name, arguments):
        self.calls.append((tool_name, arguments))
        if self.delay:
            await asyncio.sleep(self.delay)
        if callable(self.reply):
            return self.reply(tool_name, arguments)
        return self.reply

    async def start(self):
        self.started += 1
        self.alive = True

    async def stop(self):
        self.stopped += 1
        self.alive = False

    def is_alive(self):
        return self.alive


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def fake_context():
    return FakeContext()


@pytest.fixture
def bridge(registry, fake_context):
    return ToolBridge(registry, [fake_context])


@pytest.fixture
def dispatcher(registry, bridge):
    return JsonRpcDispatcher(registry, bridge, server_name="inspector-mcp", server_version="1.0.0")


@pytest.fixture
def host_command():
    return [sys.executable, "-m", "inspector_mcp.hosts.python_host"]


@pytest.fixture
def host_env():
    env = dict(os.environ)
    env["PYTHONPATH"] = PROJECT_ROOT + os.pathsep + env.get("PYTHONPATH", "")
    return env
