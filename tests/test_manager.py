"""Tests for listener start/stop transitions on real loopback ports."""
import asyncio
import socket

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import unused_port

from inspector_mcp.manager import (
    AddressInUseError,
    ServerManager,
    ServerStatus,
)


def health_app() -> web.Application:
    async def handle(request):
        return web.json_response({"status": "ok"})

    app = web.Application()
    app.router.add_get("/", handle)
    return app


async def get_status(port):
    async with aiohttp.ClientSession() as session:
        async with session.get(f"http://127.0.0.1:{port}/") as response:
            return response.status


def port_is_free(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
        return True


@pytest_asyncio.fixture
async def manager():
    manager = ServerManager(health_app)
    yield manager
    await manager.stop()


@pytest.mark.asyncio
async def test_initial_state():
    manager = ServerManager(health_app)
    assert manager.state.status is ServerStatus.UNINITIALIZED
    assert not manager.is_listening
    assert manager.port is None


@pytest.mark.asyncio
async def test_start_binds_loopback(manager):
    port = unused_port()
    state = await manager.start(port)

    assert state.status is ServerStatus.LISTENING
    assert state.port == port
    assert state.url == f"http://127.0.0.1:{port}"
    assert await get_status(port) == 200


@pytest.mark.asyncio
async def test_stop_releases_port(manager):
    port = unused_port()
    await manager.start(port)
    state = await manager.stop()

    assert state.status is ServerStatus.STOPPED
    assert state.url is None
    assert port_is_free(port)


@pytest.mark.asyncio
async def test_stop_is_idempotent(manager):
    await manager.stop()
    port = unused_port()
    await manager.start(port)
    await manager.stop()
    await manager.stop()
    assert manager.state.status is ServerStatus.STOPPED


@pytest.mark.asyncio
async def test_start_while_listening_moves_to_new_port(manager):
    old_port = unused_port()
    await manager.start(old_port)
    new_port = unused_port()
    while new_port == old_port:
        new_port = unused_port()

    await manager.start(new_port)

    assert manager.port == new_port
    assert await get_status(new_port) == 200
    assert port_is_free(old_port)


@pytest.mark.asyncio
async def test_restart_on_same_port(manager):
    port = unused_port()
    await manager.start(port)
    await manager.start(port)
    assert manager.port == port
    assert await get_status(port) == 200


@pytest.mark.asyncio
async def test_address_in_use(manager):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen()
        port = blocker.getsockname()[1]

        with pytest.raises(AddressInUseError) as excinfo:
            await manager.start(port)

    assert excinfo.value.port == port
    assert f"Port {port} is already in use" in str(excinfo.value)
    assert not manager.is_listening


@pytest.mark.asyncio
@pytest.mark.parametrize("port", [0, -1, 70000, "8787", True])
async def test_invalid_port(manager, port):
    with pytest.raises(ValueError):
        await manager.start(port)


@pytest.mark.asyncio
async def test_concurrent_transitions_are_serialised(manager):
    ports = []
    while len(ports) < 3:
        candidate = unused_port()
        if candidate not in ports:
            ports.append(candidate)

    await asyncio.gather(*(manager.start(p) for p in ports), manager.stop())

    listening = [p for p in ports if not port_is_free(p)]
    assert len(listening) <= 1
    if manager.is_listening:
        assert listening == [manager.port]
