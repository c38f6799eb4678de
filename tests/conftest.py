"""Shared fixtures: a scripted upstream provider and clean global state."""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

import httpx
import pytest

from tts_proxy.api.dependencies import get_settings
from tts_proxy.core.config import ProxyConfig
from tts_proxy.core.metrics import ProxyMetrics
from tts_proxy.proxy.upstream import GoogleTranslateTTS
from tts_proxy.services.proxy_service import TTSProxyService, reset_service

AUDIO = bytes([0x01, 0x02, 0x03])

_ENV_VARS = (
    "TTS_PROXY_SETTINGS",
    "TTS_PROXY_UPSTREAM_URL",
    "TTS_PROXY_TIMEOUT_S",
    "TTS_PROXY_STATIC_DIR",
    "TTS_PROXY_LOG_DIR",
)


class FakeProvider:
    """
    Stands in for translate_tts behind an httpx.MockTransport.

    Every request is recorded. status/body can be changed between calls;
    delay makes the response slow enough for concurrent callers to overlap.
    """

    def __init__(self, status: int = 200, body: bytes = AUDIO, delay: float = 0.0):
        self.status = status
        self.body = body
        self.delay = delay
        self.error: Optional[Exception] = None
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        content_type = "audio/mpeg" if self.status == 200 else "text/html"
        return httpx.Response(self.status, content=self.body, headers={"Content-Type": content_type})


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Drop the service singleton and cached settings around every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_service()
    get_settings.cache_clear()
    yield
    reset_service()
    get_settings.cache_clear()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_service(provider) -> Callable[..., TTSProxyService]:
    """Build a TTSProxyService wired to the fake provider and fresh metrics."""

    def _make(config: Optional[ProxyConfig] = None, **kwargs) -> TTSProxyService:
        config = config or ProxyConfig()
        upstream = GoogleTranslateTTS(config.upstream, transport=httpx.MockTransport(provider))
        kwargs.setdefault("metrics", ProxyMetrics())
        return TTSProxyService(config, upstream=upstream, **kwargs)

    return _make
