"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar so every log line emitted while a
request is being handled (including inside awaited upstream calls) carries
the same id. Level and file settings are module-level state shared by the
whole process.

Environment Variables:
    - TTS_PROXY_LOG_LEVEL: Override log level (1-4 or name)
    - TTS_PROXY_LOG_DIR: Directory for the JSONL log file
    - TTS_PROXY_JSONL_FILE: JSONL filename (default tts-proxy.jsonl)
    - TTS_PROXY_LOG_ROTATE_BYTES: Max file size before rotation
    - TTS_PROXY_LOG_ROTATE_BACKUP: Number of rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Current request id, or "-" outside a request."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _int_env(name: str) -> int | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging options from settings.yaml and the environment.

    The settings file is read directly with PyYAML rather than through
    core.config, because config validation itself logs.

    Returns:
        Dictionary with keys level, log_dir, jsonl_file,
        rotate_max_bytes and rotate_backup_count (when set).
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("TTS_PROXY_SETTINGS", "config/settings.yaml")
    if os.path.exists(settings_path):
        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            raw = {}
        if isinstance(raw, dict):
            cfg.update(raw.get("logging", {}) or {})

    if os.getenv("TTS_PROXY_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_PROXY_LOG_LEVEL"]
    if os.getenv("TTS_PROXY_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_PROXY_LOG_DIR"]
    if os.getenv("TTS_PROXY_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_PROXY_JSONL_FILE"]

    rotate_bytes = _int_env("TTS_PROXY_LOG_ROTATE_BYTES")
    if rotate_bytes is not None:
        cfg["rotate_max_bytes"] = rotate_bytes
    rotate_backup = _int_env("TTS_PROXY_LOG_ROTATE_BACKUP")
    if rotate_backup is not None:
        cfg["rotate_backup_count"] = rotate_backup

    return cfg
