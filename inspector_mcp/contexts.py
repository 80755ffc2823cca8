"""
Execution contexts the bridge can reach.

Currently implements:
  - InProcessContext: a HostEndpoint living in this process
  - StdioContext: a host process spoken to over stdin/stdout pipes

Both pass every call through JSON so a tool sees exactly what it would
see on the far side of a real process boundary.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any

from inspector_mcp.bridge import ExecutionContext, ExecutionContextError, MarshalingError
from inspector_mcp.host import HostEndpoint

logger = logging.getLogger(__name__)


class InProcessContext(ExecutionContext):
    """
    Calls a HostEndpoint in the same process.

    The endpoint can be installed and withdrawn at any time, the way a
    host publishes its entry point only once it is ready. Without an
    endpoint the context reports itself as not alive.
    """

    name = "in-process"

    def __init__(self, endpoint: HostEndpoint | None = None):
        self._endpoint = endpoint
        self._started = False

    def install(self, endpoint: HostEndpoint) -> None:
        self._endpoint = endpoint

    def uninstall(self) -> None:
        self._endpoint = None

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> None:
        self._started = False

    def is_alive(self) -> bool:
        return self._started and self._endpoint is not None

    async def call(self, tool_name: str, arguments: dict[str, Any]) -> dict:
        endpoint = self._endpoint
        if endpoint is None:
            raise ExecutionContextError("Tool handler not available")

        try:
            request = json.loads(json.dumps({"tool": tool_name, "arguments": arguments}))
        except (TypeError, ValueError) as e:
            raise MarshalingError(f"Tool arguments are not JSON-serializable: {e}") from e

        reply = await endpoint.handle_tool(request["tool"], request["arguments"])
        return json.loads(json.dumps(reply))


class StdioContext(ExecutionContext):
    """
    Host process reached over stdin/stdout pipes.

    We write one JSON request per line to its stdin and a reader task
    matches the reply lines on its stdout back to the waiting callers by
    id, so several calls can be in flight at once.
    """

    name = "stdio"

    # Seconds to wait for the host to exit after terminate() before kill()
    STOP_GRACE = 5.0
    MAX_REPLY_BYTES = 2 ** 24

    def __init__(self, command: list[str], env: dict[str, str] | None = None):
        """
        Args:
            command: Command to launch the host process.
                     e.g., [sys.executable, "-m", "inspector_mcp.hosts.python_host"]
            env: Optional environment variables for the subprocess.
        """
        self.command = command
        self.env = env
        self._process: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task | None = None
        self._pending: dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._write_lock = asyncio.Lock()

    async def start(self) -> None:
        """Launch the host subprocess."""
        if self.is_alive():
            logger.warning("Host process already running, stopping first")
            await self.stop()

        logger.info(f"Starting host process: {' '.join(self.command)}")
        self._process = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            env=self.env,
            limit=self.MAX_REPLY_BYTES,
        )
        self._reader = asyncio.create_task(self._read_replies(self._process))

    async def stop(self) -> None:
        """Terminate the host subprocess."""
        process, self._process = self._process, None
        if process is None:
            return

        if process.returncode is None:
            if process.stdin:
                process.stdin.close()
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), self.STOP_GRACE)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()

        if self._reader:
            self._reader.cancel()
            self._reader = None
        self._fail_pending(ExecutionContextError("Host process stopped"))
        logger.info("Host process stopped")

    def is_alive(self) -> bool:
        return (
            self._process is not None
            and self._process.returncode is None
            and self._reader is not None
            and not self._reader.done()
        )

    async def call(self, tool_name: str, arguments: dict[str, Any]) -> dict:
        process = self._process
        if not self.is_alive():
            raise ExecutionContextError("Host process not running. Call start() first.")

        request_id = next(self._ids)
        try:
            line = json.dumps({"id": request_id, "tool": tool_name, "arguments": arguments}) + "\n"
        except (TypeError, ValueError) as e:
            raise MarshalingError(f"Tool arguments are not JSON-serializable: {e}") from e

        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            async with self._write_lock:
                process.stdin.write(line.encode("utf-8"))
                await process.stdin.drain()
            return await future
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ExecutionContextError(f"Host process closed its input: {e}") from e
        finally:
            self._pending.pop(request_id, None)

    async def _read_replies(self, process: asyncio.subprocess.Process) -> None:
        """Route reply lines to the futures waiting on them."""
        try:
            while True:
                line = await self._read_line(process.stdout)
                if line is None:
                    break
                self._route_reply(line)
        except Exception as e:
            logger.error(f"Stopped reading host replies: {e}")
            self._fail_pending(ExecutionContextError(f"Stopped reading host replies: {e}"))
            return

        returncode = await process.wait()
        logger.warning(f"Host process exited with code {returncode}")
        self._fail_pending(ExecutionContextError(f"Host process died (exit code {returncode})"))

    async def _read_line(self, stream: asyncio.StreamReader) -> bytes | None:
        """Next reply line, or None at end of stream. Oversized lines are skipped."""
        while True:
            try:
                return await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                return e.partial or None
            except asyncio.LimitOverrunError:
                await self._skip_line(stream)
                logger.error(f"Dropped a host reply larger than {self.MAX_REPLY_BYTES} bytes")
                # The reply id was in the dropped line
                self._fail_pending(ExecutionContextError(f"Host reply exceeds {self.MAX_REPLY_BYTES} bytes"))

    @staticmethod
    async def _skip_line(stream: asyncio.StreamReader) -> None:
        while True:
            try:
                await stream.readuntil(b"\n")
                return
            except asyncio.LimitOverrunError as e:
                await stream.readexactly(e.consumed)
            except asyncio.IncompleteReadError:
                return

    def _route_reply(self, line: bytes) -> None:
        try:
            reply = json.loads(line)
        except ValueError:
            logger.warning(f"Ignoring malformed line from host: {line[:200]!r}")
            return
        if not isinstance(reply, dict):
            logger.warning(f"Ignoring non-object reply from host: {reply!r}")
            return

        future = self._pending.get(reply.pop("id", None))
        if future is None:
            logger.warning(f"Host reply matches no pending call: {reply!r}")
        elif not future.done():
            future.set_result(reply)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
