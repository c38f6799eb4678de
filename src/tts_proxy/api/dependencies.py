"""
FastAPI Dependency Injection Providers.

    get_settings()      - loads and caches settings (file optional)
    get_proxy_service() - process-wide TTSProxyService

Both are singletons: every request must share one cache, otherwise
repeated text would hit the upstream provider again.

Tests swap the service with FastAPI's dependency overrides:

    app.dependency_overrides[get_proxy_service] = lambda: stub_service
"""
from __future__ import annotations

from functools import lru_cache

from tts_proxy.core.config import Settings, load_settings_or_defaults
from tts_proxy.services.proxy_service import TTSProxyService, get_service


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    Reads $TTS_PROXY_SETTINGS (default config/settings.yaml); when the
    file does not exist, built-in defaults are used.
    """
    return load_settings_or_defaults()


def get_proxy_service() -> TTSProxyService:
    """Get the singleton TTSProxyService."""
    return get_service(get_settings())
