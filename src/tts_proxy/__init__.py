"""
tts-proxy: Caching Text-to-Speech Proxy.

A small HTTP service that sits between a browser front end and Google
Translate's TTS endpoint. It accepts text, fetches spoken MP3 audio for
it, caches the result in memory keyed on the exact text, and returns the
audio with CORS headers so a web page can play it directly.

Deployment shapes:
    - Long-running server: FastAPI app (tts_proxy.main:app), started by
      `tts-proxy serve`, which also discovers a free port
    - Serverless function: tts_proxy.serverless.handler(event, context)

Both shapes run the same TTSProxyService, so they return the same
statuses, headers and bodies.

Example Usage:
    >>> import asyncio
    >>> from tts_proxy.core.config import ProxyConfig
    >>> from tts_proxy.services import TTSProxyService, ProxyRequest
    >>>
    >>> service = TTSProxyService(ProxyConfig())
    >>> resp = asyncio.run(service.handle(ProxyRequest(method="GET", text="ကြောင်")))
    >>> with open("cat.mp3", "wb") as f:
    ...     f.write(resp.body)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
