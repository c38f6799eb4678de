"""
Port Discovery for the Long-Running Server.

During local development the proxy and the front end dev server run
side by side, and the preferred port may already be taken. The server
therefore scans upward from a base port for the first one it can bind,
and publishes the choice in a small JSON file the front end reads:

    {
      "TTS_PORT": 4001
    }
"""
from __future__ import annotations

import json
import socket
from pathlib import Path

MAX_PORT = 65535


class NoFreePortError(RuntimeError):
    """Raised when no port from the base port upward can be bound."""
    pass


def is_port_free(port: int, host: str = "127.0.0.1") -> bool:
    """Return True if host:port can be bound right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_free_port(base_port: int, host: str = "127.0.0.1", max_port: int = MAX_PORT) -> int:
    """
    Find the first bindable port at or above base_port.

    The test socket is closed before returning, so another process can
    in principle take the port before the server binds it.

    Raises:
        NoFreePortError: If every port up to max_port is in use.
    """
    for port in range(base_port, max_port + 1):
        if is_port_free(port, host):
            return port
    raise NoFreePortError(f"no free port between {base_port} and {max_port} on {host}")


def write_port_file(path: str | Path, port: int) -> Path:
    """Write {"TTS_PORT": port} to path, creating parent directories."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps({"TTS_PORT": port}, indent=2), encoding="utf-8")
    return p
