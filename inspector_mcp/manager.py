"""
Server Manager: owns the listener and its start/stop transitions.

The manager does not decide when to run; the host's enable/disable
hooks ask it to.

Usage:
    manager = ServerManager(lambda: create_app(dispatcher, "inspector-mcp", "1.0.0"))

    # Bind 127.0.0.1:8787 (restarts if already listening)
    state = await manager.start(8787)

    # Release the port (safe to call again)
    await manager.stop()
"""

from __future__ import annotations

import asyncio
import errno
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from aiohttp import web

from inspector_mcp.transport import LOOPBACK_HOST

logger = logging.getLogger(__name__)


class ServerStartError(Exception):
    """The listener could not be bound."""

    def __init__(self, message: str, port: int):
        self.port = port
        super().__init__(message)


class AddressInUseError(ServerStartError):
    def __init__(self, port: int):
        super().__init__(f"Port {port} is already in use", port)


class ServerStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LISTENING = "listening"
    STOPPED = "stopped"


@dataclass
class ServerState:
    """The listener handle and the port it holds."""
    status: ServerStatus = ServerStatus.UNINITIALIZED
    port: int | None = None
    runner: web.AppRunner | None = None
    site: web.TCPSite | None = None

    @property
    def url(self) -> str | None:
        if self.status is not ServerStatus.LISTENING:
            return None
        return f"http://{LOOPBACK_HOST}:{self.port}"


class ServerManager:
    """
    Starts and stops the HTTP listener, one transition at a time.

    Responsibilities:
    - Bind the application to loopback on the requested port
    - Restart cleanly when started while already listening
    - Release the port on stop (idempotent)
    """

    def __init__(self, app_factory: Callable[[], web.Application]):
        self._app_factory = app_factory
        self._state = ServerState()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state.status is ServerStatus.LISTENING

    @property
    def port(self) -> int | None:
        return self._state.port if self.is_listening else None

    async def start(self, port: int) -> ServerState:
        """
        Bind a fresh listener on 127.0.0.1:port.

        Returns once the socket is bound.

        Raises:
            ValueError: port is not a positive integer
            AddressInUseError: something else holds the port
            ServerStartError: any other bind failure
        """
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
            raise ValueError(f"Invalid port: {port!r}")

        async with self._lock:
            if self.is_listening:
                logger.warning(f"Server already listening on port {self._state.port}, stopping first")
                await self._stop()

            runner = web.AppRunner(self._app_factory())
            await runner.setup()
            site = web.TCPSite(runner, LOOPBACK_HOST, port)
            try:
                await site.start()
            except OSError as e:
                await runner.cleanup()
                self._state = ServerState(status=ServerStatus.STOPPED)
                if e.errno == errno.EADDRINUSE:
                    raise AddressInUseError(port) from e
                logger.error(f"Server error on port {port}: {e}")
                raise ServerStartError(f"Failed to bind {LOOPBACK_HOST}:{port}: {e}", port) from e

            self._state = ServerState(
                status=ServerStatus.LISTENING,
                port=port,
                runner=runner,
                site=site,
            )
            logger.info(f"Server started on {self._state.url}")
            return self._state

    async def stop(self) -> ServerState:
        """Close the listener and release the port. No-op when not listening."""
        async with self._lock:
            await self._stop()
            return self._state

    async def _stop(self) -> None:
        state = self._state
        if state.status is not ServerStatus.LISTENING:
            return

        if state.runner is not None:
            await state.runner.cleanup()
        self._state = ServerState(status=ServerStatus.STOPPED)
        logger.info(f"Server on port {state.port} stopped")
