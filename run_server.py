"""
Run Server: host process → bridge → MCP server on 127.0.0.1.

This is the script that closes the loop. It:
1. Reads settings (defaults, environment, flags)
2. Starts an execution context (a host subprocess, or this process)
3. Binds the MCP server on loopback
4. Serves until Ctrl+C / SIGTERM, then stops both

Usage:
    # Bundled Python host as a subprocess, default port 8787
    python run_server.py

    # Another port, 30s bound on each tool call
    python run_server.py --port 9000 --timeout 30

    # A custom host process (must speak the stdio host protocol)
    python run_server.py --host-command "node my-host.js"

    # Expose this process's own state instead of a subprocess
    python run_server.py --in-process

Try it:
    curl http://127.0.0.1:8787/
    curl -X POST http://127.0.0.1:8787/ -d '{"jsonrpc":"2.0","id":1,"method":"tools/list"}'
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import shlex
import signal
import sys

from inspector_mcp.config import Settings
from inspector_mcp.contexts import InProcessContext, StdioContext
from inspector_mcp.hosts.python_host import build_endpoint, default_state
from inspector_mcp.manager import ServerStartError
from inspector_mcp.server import InspectorServer

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

DEFAULT_HOST_COMMAND = [sys.executable, "-m", "inspector_mcp.hosts.python_host"]


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.port is not None:
        settings.port = args.port
    if args.disabled:
        settings.enabled = False
    if args.timeout is not None:
        settings.call_timeout = args.timeout
    return settings.validate()


def build_context(args: argparse.Namespace):
    if args.in_process:
        return InProcessContext(build_endpoint(default_state()))
    command = shlex.split(args.host_command) if args.host_command else DEFAULT_HOST_COMMAND
    return StdioContext(command)


async def serve(server: InspectorServer) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    try:
        await server.enable()
    except (ServerStartError, OSError) as e:
        print(f"Error: {e}")
        await server.disable()
        return 1

    if not server.manager.is_listening:
        await server.disable()
        return 0

    print(f"Inspector MCP listening on {server.state.url} (Ctrl+C to stop)")
    try:
        await stop.wait()
    finally:
        print("\nShutting down...")
        await server.disable()
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Serve host introspection tools over MCP (JSON-RPC over HTTP).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_server.py
  python run_server.py --port 9000 --timeout 30
  python run_server.py --in-process --verbose
        """,
    )
    parser.add_argument("--port", "-p", type=int, default=None, help="Port on 127.0.0.1 (default: 8787 or $INSPECTOR_MCP_PORT)")
    parser.add_argument("--disabled", action="store_true", help="Start with the server disabled (exits immediately)")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for each tool call (default: no limit)")
    parser.add_argument("--host-command", type=str, default=None, help="Command launching the host process")
    parser.add_argument("--in-process", action="store_true", help="Serve this process's state instead of a subprocess")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = build_settings(args)
    except ValueError as e:
        parser.error(str(e))

    server = InspectorServer(settings, contexts=[build_context(args)])
    try:
        sys.exit(asyncio.run(serve(server)))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
