"""Tests for the numeric logging levels and formatters."""
from __future__ import annotations

import asyncio
import io
import json
import logging
import os
from unittest.mock import patch

import pytest

from tts_proxy.core.logging import (
    ColoredConsoleFormatter,
    JsonlFormatter,
    LogLevel,
    coerce_level,
    configure_logging,
    debug,
    error,
    get_level,
    get_logger,
    get_request_id,
    info,
    set_request_id,
    verbose,
    warn,
)
from tts_proxy.core.logging.context import read_logging_config


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    set_request_id("-")
    with patch.dict(os.environ):
        for name in ("TTS_PROXY_LOG_LEVEL", "TTS_PROXY_LOG_DIR", "TTS_PROXY_JSONL_FILE", "TTS_PROXY_SETTINGS"):
            os.environ.pop(name, None)
        configure_logging(force=True)


def _capture(level, emit) -> str:
    captured = io.StringIO()
    with patch("sys.stdout", captured), patch.dict(os.environ, {"TTS_PROXY_NO_COLOR": "1"}):
        configure_logging(level=level, force=True)
        emit(get_logger("test"))
    return captured.getvalue()


class TestLogLevelEnum:

    def test_values(self):
        assert LogLevel.MINIMAL == 1
        assert LogLevel.NORMAL == 2
        assert LogLevel.VERBOSE == 3
        assert LogLevel.DEBUG == 4

    def test_ordering(self):
        assert LogLevel.MINIMAL < LogLevel.NORMAL < LogLevel.VERBOSE < LogLevel.DEBUG


class TestLevelCoercion:

    @pytest.mark.parametrize("value, expected", [
        (1, LogLevel.MINIMAL),
        (4, LogLevel.DEBUG),
        ("3", LogLevel.VERBOSE),
        ("minimal", LogLevel.MINIMAL),
        ("DEBUG", LogLevel.DEBUG),
        ("INFO", LogLevel.NORMAL),
        ("warning", LogLevel.MINIMAL),
        (logging.WARNING, LogLevel.MINIMAL),
        (logging.INFO, LogLevel.NORMAL),
        ("nonsense", LogLevel.NORMAL),
        (None, LogLevel.NORMAL),
    ])
    def test_coerce(self, value, expected):
        assert coerce_level(value) == expected


class TestLevelFiltering:

    def test_minimal(self):
        def emit(log):
            info(log, "info message")
            error(log, "error message")

        output = _capture(1, emit)
        assert "error message" in output
        assert "info message" not in output

    def test_normal(self):
        def emit(log):
            info(log, "info message")
            warn(log, "warn message")
            verbose(log, "verbose message")

        output = _capture(2, emit)
        assert "info message" in output
        assert "warn message" in output
        assert "verbose message" not in output

    def test_debug_shows_everything(self):
        def emit(log):
            verbose(log, "verbose message")
            debug(log, "debug message")

        output = _capture(4, emit)
        assert "verbose message" in output
        assert "debug message" in output


class TestRequestId:

    def test_request_id_in_output(self):
        def emit(log):
            set_request_id("rid-123")
            info(log, "hit", cache="hit")

        output = _capture(2, emit)
        assert "(rid-123)" in output
        assert "cache=hit" in output

    def test_request_id_is_per_context(self):
        set_request_id("outer")

        async def inner():
            set_request_id("inner")
            return get_request_id()

        assert asyncio.run(inner()) == "inner"
        assert get_request_id() == "outer"


class TestEnvironment:

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("TTS_PROXY_LOG_LEVEL", "3")
        configure_logging(force=True)
        assert get_level() == LogLevel.VERBOSE

    def test_settings_file_level(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("logging:\n  level: 4\n  log_dir: logs\n", encoding="utf-8")
        monkeypatch.setenv("TTS_PROXY_SETTINGS", str(path))

        cfg = read_logging_config()
        assert cfg["level"] == 4
        assert cfg["log_dir"] == "logs"

    def test_jsonl_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TTS_PROXY_LOG_DIR", str(tmp_path))
        monkeypatch.setenv("TTS_PROXY_JSONL_FILE", "proxy.jsonl")
        configure_logging(level=2, force=True)

        set_request_id("abc")
        info(get_logger("test"), "set", bytes=3, event="cache", seconds=0.01)
        for handler in logging.getLogger().handlers:
            handler.flush()
            handler.close()

        lines = (tmp_path / "proxy.jsonl").read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
        assert record["message"] == "set"
        assert record["request_id"] == "abc"
        assert record["event"] == "cache"
        assert record["seconds"] == 0.01
        assert record["extra"] == {"bytes": 3}


class TestFormatters:

    def _record(self, **extra):
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "upstream_rejected", None, None)
        for k, v in extra.items():
            setattr(record, k, v)
        return record

    def test_console_without_colors(self):
        fmt = ColoredConsoleFormatter(use_colors=False)
        line = fmt.format(self._record(tag="WARN", request_id="r1",
                                       extra_data={"upstream_status": 403}, seconds=0.412))

        assert "[ WARN  ]" in line
        assert "(r1)" in line
        assert "upstream_status=403" in line
        assert line.endswith("0.412s")
        assert "\033[" not in line

    def test_console_with_colors(self):
        fmt = ColoredConsoleFormatter(use_colors=True)
        assert "\033[" in fmt.format(self._record(tag="INFO"))

    def test_jsonl_keeps_unicode(self):
        line = JsonlFormatter().format(self._record(tag="INFO", extra_data={"text": "ကြောင်"}, numeric_level=2))
        data = json.loads(line)
        assert data["extra"]["text"] == "ကြောင်"
        assert "ကြောင်" in line
