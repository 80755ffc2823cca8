"""
Server settings.

Values come from the defaults below, then the environment, then the
command line (run_server.py). They are read at start time; changing
them does not affect a server that is already listening.

Environment:
    INSPECTOR_MCP_PORT          listener port (default 8787)
    INSPECTOR_MCP_ENABLED       1/0, true/false, yes/no, on/off (default true)
    INSPECTOR_MCP_CALL_TIMEOUT  seconds to wait for a tool (default: no limit)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from inspector_mcp import __version__

DEFAULT_PORT = 8787
SERVICE_NAME = "inspector-mcp"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Settings:
    port: int = DEFAULT_PORT
    enabled: bool = True
    call_timeout: float | None = None
    service_name: str = SERVICE_NAME
    version: str = __version__

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        settings = cls()

        raw = environ.get("INSPECTOR_MCP_PORT")
        if raw:
            try:
                settings.port = int(raw)
            except ValueError:
                raise ValueError(f"INSPECTOR_MCP_PORT must be an integer, got {raw!r}") from None

        raw = environ.get("INSPECTOR_MCP_ENABLED")
        if raw:
            settings.enabled = _parse_bool("INSPECTOR_MCP_ENABLED", raw)

        raw = environ.get("INSPECTOR_MCP_CALL_TIMEOUT")
        if raw:
            try:
                settings.call_timeout = float(raw)
            except ValueError:
                raise ValueError(f"INSPECTOR_MCP_CALL_TIMEOUT must be a number, got {raw!r}") from None

        return settings.validate()

    def validate(self) -> "Settings":
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port!r}")
        if self.call_timeout is not None and self.call_timeout <= 0:
            raise ValueError(f"call_timeout must be positive, got {self.call_timeout!r}")
        return self


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")
