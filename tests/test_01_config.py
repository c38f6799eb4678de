"""Tests for settings loading, defaults and validation."""
from __future__ import annotations

import pytest

from tts_proxy.core.config import (
    ConfigValidationError,
    Defaults,
    ProxyConfig,
    Settings,
    load_settings,
    load_settings_or_defaults,
)


class TestDefaults:

    def test_empty_settings_give_defaults(self):
        config = ProxyConfig.from_settings(Settings(raw={}))

        assert config.upstream.base_url == "https://translate.google.com/translate_tts"
        assert config.upstream.language == "my"
        assert config.upstream.client == "tw-ob"
        assert config.upstream.referer == "https://translate.google.com/"
        assert config.upstream.timeout_s == 10.0
        assert config.upstream.rejection_status == "mirror"
        assert config.cache.max_items == 0
        assert config.cache.ttl_seconds == 0
        assert config.cache.single_flight is True
        assert config.cors.allow_origin == "*"
        assert config.response.cache_control == "public, max-age=31536000, immutable"
        assert config.server.base_port == 4001
        assert config.server.port_file == "src/config.json"

    def test_user_agent_is_a_desktop_browser(self):
        assert Defaults.UPSTREAM_USER_AGENT.startswith("Mozilla/5.0")

    def test_upstream_host(self):
        assert ProxyConfig().upstream.host == "translate.google.com"

    def test_to_dict_has_every_section(self):
        data = ProxyConfig().to_dict()
        for section in ("upstream", "cache", "cors", "response", "validation", "server", "logging"):
            assert section in data


class TestFromSettings:

    def test_yaml_values_are_used(self):
        settings = Settings(raw={
            "upstream": {"timeout_s": 3, "rejection_status": "BAD_GATEWAY", "language": "en"},
            "cache": {"max_items": 500, "ttl_seconds": 3600, "single_flight": False},
            "validation": {"max_text_chars": 200},
        })
        config = settings.get_proxy_config()

        assert config.upstream.timeout_s == 3.0
        assert config.upstream.rejection_status == "bad_gateway"
        assert config.upstream.language == "en"
        assert config.cache.max_items == 500
        assert config.cache.ttl_seconds == 3600
        assert config.cache.single_flight is False
        assert config.validation.max_text_chars == 200

    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("TTS_PROXY_UPSTREAM_URL", "http://localhost:9999/tts")
        monkeypatch.setenv("TTS_PROXY_TIMEOUT_S", "2.5")
        settings = Settings(raw={"upstream": {"base_url": "https://example.com/tts", "timeout_s": 30}})

        config = ProxyConfig.from_settings(settings)

        assert config.upstream.base_url == "http://localhost:9999/tts"
        assert config.upstream.timeout_s == 2.5
        assert config.upstream.host == "localhost:9999"

    def test_string_log_level(self):
        config = ProxyConfig.from_settings(Settings(raw={"logging": {"level": "DEBUG"}}))
        assert config.logging.level == 4

    def test_null_sections_are_tolerated(self):
        config = ProxyConfig.from_settings(Settings(raw={"upstream": None, "cache": None}))
        assert config.upstream.timeout_s == Defaults.UPSTREAM_TIMEOUT_S

    def test_settings_build_proxy_config(self):
        config = Settings(raw={"upstream": {"language": "th"}}).get_proxy_config()
        assert config.upstream.language == "th"
        assert config.upstream.base_url == Defaults.UPSTREAM_BASE_URL


class TestValidation:

    @pytest.mark.parametrize("raw, fragment", [
        ({"upstream": {"timeout_s": 0}}, "upstream.timeout_s"),
        ({"upstream": {"rejection_status": "retry"}}, "upstream.rejection_status"),
        ({"upstream": {"base_url": "ftp://example.com"}}, "upstream.base_url"),
        ({"cache": {"max_items": -1}}, "cache.max_items"),
        ({"cache": {"ttl_seconds": -5}}, "cache.ttl_seconds"),
        ({"validation": {"max_text_chars": -1}}, "validation.max_text_chars"),
        ({"server": {"base_port": 70000}}, "server.base_port"),
        ({"logging": {"level": 9}}, "logging.level"),
    ])
    def test_invalid_values_raise(self, raw, fragment):
        with pytest.raises(ConfigValidationError, match=fragment.replace(".", r"\.")):
            ProxyConfig.from_settings(Settings(raw=raw))

    def test_non_numeric_timeout_raises(self, monkeypatch):
        monkeypatch.setenv("TTS_PROXY_TIMEOUT_S", "soon")
        with pytest.raises(ConfigValidationError):
            ProxyConfig.from_settings(Settings(raw={}))


class TestLoading:

    def test_load_settings_from_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("upstream:\n  timeout_s: 4\ncache:\n  max_items: 10\n", encoding="utf-8")

        settings = load_settings(str(path))

        assert settings.raw["upstream"]["timeout_s"] == 4
        assert settings.get_proxy_config().cache.max_items == 10

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_non_mapping_file_raises(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_settings(str(path))

    def test_empty_file_is_empty_settings(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(str(path)).raw == {}

    def test_or_defaults_without_file(self, tmp_path):
        assert load_settings_or_defaults(str(tmp_path / "missing.yaml")).raw == {}

    def test_or_defaults_reads_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("upstream:\n  language: en\n", encoding="utf-8")
        monkeypatch.setenv("TTS_PROXY_SETTINGS", str(path))

        assert load_settings_or_defaults().raw["upstream"]["language"] == "en"
