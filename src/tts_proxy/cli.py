"""
Command-Line Interface for tts-proxy.

Subcommands:
    serve   Run the long-running proxy server on a free port
    fetch   Fetch audio for one text through the proxy pipeline (no server)
    config  Print the effective configuration

Usage Examples:
    # Start the server on the first free port from 4001 and write src/config.json
    tts-proxy serve

    # Fixed port, no port file
    tts-proxy serve --port 8080 --no-port-file

    # One-off fetch
    tts-proxy fetch "မင်္ဂလာပါ" --out hello.mp3

    # Show configuration after YAML and environment overrides
    tts-proxy config --json

Environment Variables:
    TTS_PROXY_SETTINGS: Settings file (default: config/settings.yaml)
    TTS_PROXY_UPSTREAM_URL: Upstream TTS endpoint override
    TTS_PROXY_TIMEOUT_S: Upstream timeout override
    TTS_PROXY_LOG_LEVEL: Log level (1-4)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

import yaml

from tts_proxy.core.config import ConfigValidationError, ProxyConfig, load_settings_or_defaults
from tts_proxy.core.logging import configure_logging, error, get_logger, info, set_request_id


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(prog="tts-proxy", description="tts-proxy CLI (caching TTS proxy)")
    parser.add_argument("--settings", help="Settings YAML (default: $TTS_PROXY_SETTINGS or config/settings.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", help="Bind address (default: server.host)")
    serve.add_argument("--port", type=int, help="Port to bind; skips free-port discovery")
    serve.add_argument("--no-port-file", action="store_true",
                       help="Do not write the port file")

    fetch = sub.add_parser("fetch", help="Fetch audio for a text")
    fetch.add_argument("text", help="Text to speak")
    fetch.add_argument("--out", default="out.mp3", help="Output MP3 path")

    cfg = sub.add_parser("config", help="Print effective configuration")
    cfg.add_argument("--json", action="store_true", help="Print JSON instead of YAML")

    return parser.parse_args(argv)


def _serve(args: argparse.Namespace, config: ProxyConfig) -> int:
    """
    Start uvicorn on the requested port or the first free one.

    Returns:
        1 if no port is available, otherwise uvicorn's exit (0).
    """
    import uvicorn

    from tts_proxy.utils.ports import NoFreePortError, find_free_port, write_port_file

    log = get_logger("tts-proxy.cli")
    host = args.host or config.server.host

    if args.port:
        port = args.port
    else:
        try:
            port = find_free_port(config.server.base_port, host)
        except NoFreePortError as e:
            error(log, "no_free_port", error=str(e))
            return 1

    if not args.no_port_file:
        path = write_port_file(config.server.port_file, port)
        info(log, "port_file_written", path=str(path), port=port)

    info(log, "server_start", url=f"http://{host}:{port}")
    uvicorn.run("tts_proxy.main:app", host=host, port=port, log_config=None)
    return 0


def _fetch(args: argparse.Namespace, config: ProxyConfig) -> int:
    """Run one request through TTSProxyService and save the audio."""
    from tts_proxy.services.proxy_service import ProxyRequest, TTSProxyService

    log = get_logger("tts-proxy.cli")
    service = TTSProxyService(config)
    response = asyncio.run(service.handle(ProxyRequest(method="GET", text=args.text, path="cli")))

    if response.status_code != 200:
        print(response.body.decode("utf-8"))
        return 1

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(response.body)
    info(log, "fetch_done", out=str(out_path), bytes=len(response.body))

    print(json.dumps({"ok": True, "out": str(out_path), "bytes": len(response.body)}, ensure_ascii=False))
    return 0


def _config(args: argparse.Namespace, config: ProxyConfig) -> int:
    data = config.to_dict()
    if args.json:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), end="")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = _parse_args(argv)

    # Exported so the ASGI app loaded by uvicorn reads the same file
    if args.settings:
        os.environ["TTS_PROXY_SETTINGS"] = args.settings

    configure_logging()
    set_request_id(str(uuid4())[:12])

    try:
        config = ProxyConfig.from_settings(load_settings_or_defaults(args.settings))
    except ConfigValidationError as e:
        print(f"Invalid configuration: {e}")
        return 2

    if args.command == "serve":
        return _serve(args, config)
    if args.command == "fetch":
        return _fetch(args, config)
    return _config(args, config)


if __name__ == "__main__":
    raise SystemExit(main())
