"""
Configuration Management for tts-proxy.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (TTS_PROXY_UPSTREAM_URL, TTS_PROXY_TIMEOUT_S, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    upstream:
      timeout_s: 10
      rejection_status: mirror

    cache:
      max_items: 0        # unbounded
      single_flight: true

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlsplit

import yaml


DEFAULT_SETTINGS_PATH = "config/settings.yaml"


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Out of the box the proxy keeps an unbounded, never-expiring cache
    keyed on the exact text, and fetches a Burmese voice from Google
    Translate's TTS endpoint.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Upstream provider
    # ─────────────────────────────────────────────────────────────────────────
    UPSTREAM_BASE_URL = "https://translate.google.com/translate_tts"
    UPSTREAM_LANGUAGE = "my"            # Burmese
    UPSTREAM_CLIENT = "tw-ob"           # Client id the endpoint expects
    UPSTREAM_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36"
    )
    UPSTREAM_REFERER = "https://translate.google.com/"
    UPSTREAM_TIMEOUT_S = 10.0
    UPSTREAM_REJECTION_STATUS = "mirror"    # mirror | bad_gateway

    # ─────────────────────────────────────────────────────────────────────────
    # Cache
    # ─────────────────────────────────────────────────────────────────────────
    CACHE_MAX_ITEMS = 0                 # 0 = unbounded
    CACHE_TTL_SECONDS = 0               # 0 = entries never expire
    CACHE_SINGLE_FLIGHT = True          # Share one upstream call per key

    # ─────────────────────────────────────────────────────────────────────────
    # CORS / response shaping
    # ─────────────────────────────────────────────────────────────────────────
    CORS_ALLOW_ORIGIN = "*"
    CORS_ALLOW_METHODS = "GET, OPTIONS"
    CORS_ALLOW_HEADERS = "Content-Type"
    RESPONSE_CACHE_CONTROL = "public, max-age=31536000, immutable"

    # ─────────────────────────────────────────────────────────────────────────
    # Validation
    # ─────────────────────────────────────────────────────────────────────────
    VALIDATION_MAX_TEXT_CHARS = 0       # 0 = no length cap

    # ─────────────────────────────────────────────────────────────────────────
    # Long-running server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_HOST = "127.0.0.1"
    SERVER_BASE_PORT = 4001
    SERVER_PORT_FILE = "src/config.json"
    SERVER_STATIC_DIR = ""

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 40
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


REJECTION_MODES = ("mirror", "bad_gateway")


@dataclass
class UpstreamConfig:
    """
    Upstream TTS provider configuration.

    user_agent and referer are sent on every call; the provider rejects
    requests that lack them.
    """
    base_url: str = Defaults.UPSTREAM_BASE_URL
    language: str = Defaults.UPSTREAM_LANGUAGE
    client: str = Defaults.UPSTREAM_CLIENT
    user_agent: str = Defaults.UPSTREAM_USER_AGENT
    referer: str = Defaults.UPSTREAM_REFERER
    timeout_s: float = Defaults.UPSTREAM_TIMEOUT_S
    rejection_status: str = Defaults.UPSTREAM_REJECTION_STATUS

    @property
    def host(self) -> str:
        """Host name of the provider, for health output and logs."""
        return urlsplit(self.base_url).netloc


@dataclass
class CacheConfig:
    """
    In-memory response cache configuration.

    Zero for max_items or ttl_seconds disables the corresponding limit.
    """
    max_items: int = Defaults.CACHE_MAX_ITEMS
    ttl_seconds: int = Defaults.CACHE_TTL_SECONDS
    single_flight: bool = Defaults.CACHE_SINGLE_FLIGHT


@dataclass
class CorsConfig:
    """Cross-origin headers attached to every response."""
    allow_origin: str = Defaults.CORS_ALLOW_ORIGIN
    allow_methods: str = Defaults.CORS_ALLOW_METHODS
    allow_headers: str = Defaults.CORS_ALLOW_HEADERS


@dataclass
class ResponseConfig:
    """Headers for successful audio responses."""
    cache_control: str = Defaults.RESPONSE_CACHE_CONTROL


@dataclass
class ValidationConfig:
    """Limits applied to the text parameter."""
    max_text_chars: int = Defaults.VALIDATION_MAX_TEXT_CHARS


@dataclass
class ServerConfig:
    """
    Long-running server configuration.

    port_file receives {"TTS_PORT": <port>} so a separately served
    front end can locate the proxy during local development.
    """
    host: str = Defaults.SERVER_HOST
    base_port: int = Defaults.SERVER_BASE_PORT
    port_file: str = Defaults.SERVER_PORT_FILE
    static_dir: str = Defaults.SERVER_STATIC_DIR


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, errors only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Upstream timing, detailed flow
        4 = DEBUG: Internal state
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ProxyConfig:
    """
    Validated configuration for TTSProxyService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ProxyConfig.from_settings(settings)
        print(config.upstream.timeout_s)
    """
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)
    response: ResponseConfig = field(default_factory=ResponseConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ProxyConfig":
        """
        Create ProxyConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ProxyConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Upstream configuration (with environment variable overrides)
        # ─────────────────────────────────────────────────────────────────────
        upstream_raw = raw.get("upstream", {}) or {}
        timeout_env = os.getenv("TTS_PROXY_TIMEOUT_S")
        try:
            upstream = UpstreamConfig(
                base_url=os.getenv("TTS_PROXY_UPSTREAM_URL")
                    or str(upstream_raw.get("base_url", Defaults.UPSTREAM_BASE_URL)),
                language=str(upstream_raw.get("language", Defaults.UPSTREAM_LANGUAGE)),
                client=str(upstream_raw.get("client", Defaults.UPSTREAM_CLIENT)),
                user_agent=str(upstream_raw.get("user_agent", Defaults.UPSTREAM_USER_AGENT)),
                referer=str(upstream_raw.get("referer", Defaults.UPSTREAM_REFERER)),
                timeout_s=float(timeout_env if timeout_env
                    else upstream_raw.get("timeout_s", Defaults.UPSTREAM_TIMEOUT_S)),
                rejection_status=str(
                    upstream_raw.get("rejection_status", Defaults.UPSTREAM_REJECTION_STATUS)
                ).lower(),
            )
        except ValueError as e:
            raise ConfigValidationError(f"upstream: {e}") from e
        cls._validate_positive("upstream.timeout_s", upstream.timeout_s)
        cls._validate_choice("upstream.rejection_status", upstream.rejection_status, REJECTION_MODES)
        if not upstream.base_url.startswith(("http://", "https://")):
            raise ConfigValidationError(
                f"upstream.base_url must be an http(s) URL, got {upstream.base_url!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Cache configuration
        # ─────────────────────────────────────────────────────────────────────
        cache_raw = raw.get("cache", {}) or {}
        cache = CacheConfig(
            max_items=int(cache_raw.get("max_items", Defaults.CACHE_MAX_ITEMS)),
            ttl_seconds=int(cache_raw.get("ttl_seconds", Defaults.CACHE_TTL_SECONDS)),
            single_flight=bool(cache_raw.get("single_flight", Defaults.CACHE_SINGLE_FLIGHT)),
        )
        cls._validate_non_negative("cache.max_items", cache.max_items)
        cls._validate_non_negative("cache.ttl_seconds", cache.ttl_seconds)

        # ─────────────────────────────────────────────────────────────────────
        # CORS and response headers
        # ─────────────────────────────────────────────────────────────────────
        cors_raw = raw.get("cors", {}) or {}
        cors = CorsConfig(
            allow_origin=str(cors_raw.get("allow_origin", Defaults.CORS_ALLOW_ORIGIN)),
            allow_methods=str(cors_raw.get("allow_methods", Defaults.CORS_ALLOW_METHODS)),
            allow_headers=str(cors_raw.get("allow_headers", Defaults.CORS_ALLOW_HEADERS)),
        )
        response_raw = raw.get("response", {}) or {}
        response = ResponseConfig(
            cache_control=str(response_raw.get("cache_control", Defaults.RESPONSE_CACHE_CONTROL)),
        )

        # ─────────────────────────────────────────────────────────────────────
        # Validation limits
        # ─────────────────────────────────────────────────────────────────────
        validation_raw = raw.get("validation", {}) or {}
        validation = ValidationConfig(
            max_text_chars=int(validation_raw.get("max_text_chars", Defaults.VALIDATION_MAX_TEXT_CHARS)),
        )
        cls._validate_non_negative("validation.max_text_chars", validation.max_text_chars)

        # ─────────────────────────────────────────────────────────────────────
        # Server configuration
        # ─────────────────────────────────────────────────────────────────────
        server_raw = raw.get("server", {}) or {}
        server = ServerConfig(
            host=str(server_raw.get("host", Defaults.SERVER_HOST)),
            base_port=int(server_raw.get("base_port", Defaults.SERVER_BASE_PORT)),
            port_file=str(server_raw.get("port_file", Defaults.SERVER_PORT_FILE)),
            static_dir=os.getenv("TTS_PROXY_STATIC_DIR")
                or str(server_raw.get("static_dir", Defaults.SERVER_STATIC_DIR) or ""),
        )
        cls._validate_range("server.base_port", server.base_port, 1, 65535)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            upstream=upstream,
            cache=cache,
            cors=cors,
            response=response,
            validation=validation,
            server=server,
            logging=logging_cfg,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict view of the effective configuration."""
        return asdict(self)

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
        """Validate that a value is one of the allowed choices."""
        if value not in choices:
            raise ConfigValidationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_proxy_config() to get the validated ProxyConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any] = field(default_factory=dict)

    def get_proxy_config(self) -> ProxyConfig:
        """
        Get validated ProxyConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ProxyConfig.from_settings(self)


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
        ConfigValidationError: If the file is not a YAML mapping.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigValidationError(f"settings file must contain a mapping: {p}")

    return Settings(raw=raw)


def load_settings_or_defaults(path: str | None = None) -> Settings:
    """
    Load settings, falling back to defaults when no file is present.

    The path defaults to $TTS_PROXY_SETTINGS, then config/settings.yaml.
    A file that exists but fails to parse still raises.
    """
    path = path or os.getenv("TTS_PROXY_SETTINGS", DEFAULT_SETTINGS_PATH)
    if not Path(path).exists():
        return Settings(raw={})
    return load_settings(path)
