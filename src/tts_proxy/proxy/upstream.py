"""
Google Translate TTS Client.

Fetches MP3 audio for a text from the translate_tts endpoint:

    GET https://translate.google.com/translate_tts
        ?ie=UTF-8&q=<url-encoded text>&tl=my&client=tw-ob

The endpoint is undocumented. It refuses requests that do not look like
they come from a browser on its own site, so every call carries a desktop
User-Agent and a Referer pointing at translate.google.com.

Behavior:
    - The whole body is read before returning; nothing is forwarded
      chunk by chunk.
    - Non-2xx answers raise UpstreamRejection.
    - Connection errors and timeouts raise TransportFailure.
    - Redirects are not followed; a 3xx counts as a rejection.
    - Each fetch, body included, is bounded by upstream.timeout_s.
"""
from __future__ import annotations

import asyncio
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from tts_proxy.core.config import UpstreamConfig
from tts_proxy.core.errors import TransportFailure, UpstreamRejection
from tts_proxy.core.logging import debug, get_logger

_LOG = get_logger("tts-proxy.upstream")

# Characters encodeURIComponent leaves alone; the endpoint is used to them
_URI_COMPONENT_SAFE = "-_.!~*'()"


class GoogleTranslateTTS:
    """
    Client for the translate_tts endpoint.

    A fresh httpx.AsyncClient is opened per fetch so the client works
    under any event loop, including one asyncio.run() per serverless
    invocation.

    Attributes:
        config: Upstream settings (URL, language, headers, timeout).
    """

    def __init__(self, config: UpstreamConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            config: Upstream configuration.
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        """
        self.config = config
        self._transport = transport

    @property
    def host(self) -> str:
        return self.config.host

    def build_url(self, text: str) -> str:
        """Provider URL for a text, with fixed language and client parameters."""
        return (
            f"{self.config.base_url}?ie=UTF-8"
            f"&q={quote(text, safe=_URI_COMPONENT_SAFE)}"
            f"&tl={self.config.language}"
            f"&client={self.config.client}"
        )

    def headers(self) -> Dict[str, str]:
        """Headers the provider requires."""
        return {
            "User-Agent": self.config.user_agent,
            "Referer": self.config.referer,
        }

    async def fetch(self, text: str) -> bytes:
        """
        Fetch the audio for a text.

        upstream.timeout_s bounds the whole call (connect, headers and
        the full body), not just each individual network read.

        Returns:
            The complete MP3 payload.

        Raises:
            UpstreamRejection: Provider answered with a non-2xx status.
            TransportFailure: Provider could not be reached or timed out.
        """
        url = self.build_url(text)
        debug(_LOG, "upstream_request", url=url)

        try:
            return await asyncio.wait_for(self._download(url), timeout=self.config.timeout_s)
        except asyncio.TimeoutError as e:
            raise TransportFailure(f"upstream call exceeded {self.config.timeout_s}s") from e
        except httpx.HTTPError as e:
            raise TransportFailure(str(e) or type(e).__name__) from e

    async def _download(self, url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_s),
            transport=self._transport,
            follow_redirects=False,
        ) as client:
            async with client.stream("GET", url, headers=self.headers()) as resp:
                debug(_LOG, "upstream_response", upstream_status=resp.status_code,
                      content_type=resp.headers.get("content-type"))
                if not 200 <= resp.status_code < 300:
                    raise UpstreamRejection(resp.status_code)
                chunks = [chunk async for chunk in resp.aiter_bytes()]
        return b"".join(chunks)
