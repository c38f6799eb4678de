"""
TTSProxyService - Request Handling for the TTS Proxy.

This module provides the TTSProxyService class, the single place where a
"synthesize this text" request becomes a response. The FastAPI routes
(long-running server) and the serverless handler both call handle(), so
both deployment shapes behave identically; they differ only in how the
returned ProxyResponse is encoded.

Pipeline:
    Request → Preflight? → Validate → Cache lookup → (miss) Upstream fetch
            → Store → Response

State machine per request:
    Start → {Preflight | Validate}
    Validate → {Fail(missing-param) | CacheLookup}
    CacheLookup → {Hit → Respond | Miss → UpstreamFetch}
    UpstreamFetch → {Success → StoreAndRespond | UpstreamError → RespondError
                     | TransportError → RespondError}

There is no retry loop. A failed upstream call fails the request and
nothing is cached for it, so the next identical request tries again.

Example:
    >>> service = TTSProxyService(ProxyConfig())
    >>> resp = asyncio.run(service.handle(ProxyRequest(method="GET", text="မင်္ဂလာပါ")))
    >>> resp.status_code, resp.content_type
    (200, 'audio/mpeg')
"""
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from tts_proxy.core.config import ProxyConfig, Settings, load_settings_or_defaults
from tts_proxy.core.errors import (
    ClientInputError,
    ErrorCode,
    ProxyError,
    TransportFailure,
    UpstreamRejection,
)
from tts_proxy.core.logging import fail, get_logger, info, set_request_id, success, verbose, warn
from tts_proxy.core.metrics import ProxyMetrics, metrics as default_metrics
from tts_proxy.proxy.cache import ResponseCache
from tts_proxy.proxy.response import ProxyResponse
from tts_proxy.proxy.singleflight import SingleFlight
from tts_proxy.proxy.upstream import GoogleTranslateTTS
from tts_proxy.services.validators import validate_text
from tts_proxy.utils.timeit import timeit

_LOG = get_logger("tts-proxy.service")

BAD_GATEWAY = 502


@dataclass
class ProxyRequest:
    """
    An inbound request, independent of the transport it arrived on.

    Attributes:
        method: HTTP method ("GET", "OPTIONS", ...).
        text: Value of the q query parameter, None when absent.
        path: Request path, for logging only.
    """
    method: str
    text: Optional[str] = None
    path: str = "/tts"

    @classmethod
    def from_query(cls, method: str, query: Optional[Mapping[str, Any]], path: str = "/tts") -> "ProxyRequest":
        """Build a request from a query-parameter mapping (may be None)."""
        value = (query or {}).get("q")
        return cls(method=(method or "GET").upper(), text=value if value is None else str(value), path=path)


class TTSProxyService:
    """
    Proxy between a browser client and the upstream TTS provider.

    The service owns its collaborators: the response cache, the upstream
    client and the single-flight registry. Each can be passed in, which
    is how tests substitute a stub upstream or a bounded cache.

    Usage:
        service = TTSProxyService(ProxyConfig.from_settings(settings))
        response = await service.handle(ProxyRequest.from_query("GET", {"q": "ကြောင်"}))
    """

    def __init__(
        self,
        config: ProxyConfig,
        cache: Optional[ResponseCache] = None,
        upstream: Optional[GoogleTranslateTTS] = None,
        flights: Optional[SingleFlight] = None,
        metrics: Optional[ProxyMetrics] = None,
    ):
        """
        Args:
            config: Validated proxy configuration.
            cache: Response cache (default: built from config.cache).
            upstream: Upstream client (default: built from config.upstream).
            flights: Single-flight registry (default: new registry).
            metrics: Metrics sink (default: the global instance).
        """
        self._config = config
        self._cache = cache if cache is not None else ResponseCache(
            max_items=config.cache.max_items,
            ttl_seconds=config.cache.ttl_seconds,
        )
        self._upstream = upstream if upstream is not None else GoogleTranslateTTS(config.upstream)
        self._flights = flights if flights is not None else SingleFlight()
        self._metrics = metrics if metrics is not None else default_metrics
        self._preview_chars = config.logging.text_preview_chars

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> ProxyConfig:
        return self._config

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def upstream(self) -> GoogleTranslateTTS:
        return self._upstream

    @property
    def flights(self) -> SingleFlight:
        return self._flights

    # =========================================================================
    # Header helpers
    # =========================================================================

    def cors_headers(self) -> Dict[str, str]:
        """Header attached to every response, cached or not."""
        return {"Access-Control-Allow-Origin": self._config.cors.allow_origin}

    def preflight_headers(self) -> Dict[str, str]:
        """Headers answering a CORS preflight."""
        headers = self.cors_headers()
        headers["Access-Control-Allow-Headers"] = self._config.cors.allow_headers
        headers["Access-Control-Allow-Methods"] = self._config.cors.allow_methods
        return headers

    def _preview(self, text: Optional[str]) -> str:
        if not text or self._preview_chars <= 0:
            return ""
        return text[:self._preview_chars]

    # =========================================================================
    # Public API: handle()
    # =========================================================================

    async def handle(self, request: ProxyRequest, request_id: Optional[str] = None) -> ProxyResponse:
        """
        Turn a request into exactly one response.

        Args:
            request: The inbound request.
            request_id: Id for log correlation (generated when omitted).

        Returns:
            A ProxyResponse. Expected failures are returned as JSON error
            responses, never raised.
        """
        set_request_id(request_id or uuid.uuid4().hex[:12])

        with timeit("request") as t:
            response = await self._handle(request)

        info(_LOG, "done", method=request.method, status=response.status_code,
             bytes=len(response.body), seconds=round(t.seconds, 4))
        return response

    async def _handle(self, request: ProxyRequest) -> ProxyResponse:
        if request.method == "OPTIONS":
            verbose(_LOG, "preflight", path=request.path)
            self._metrics.record_request("preflight")
            return ProxyResponse.empty(200, self.preflight_headers())

        try:
            text = validate_text(request.text, self._config.validation.max_text_chars)
            info(_LOG, "request", chars=len(text), text=self._preview(text))

            cached = self._cache.get(text)
            if cached is not None:
                info(_LOG, "hit", cache="hit", bytes=len(cached.body))
                self._metrics.record_request("hit")
                return cached.with_headers(self.cors_headers())

            info(_LOG, "miss", cache="miss")
            response = await self._fetch(text)
            self._metrics.record_request("miss")
            return response.with_headers(self.cors_headers())

        except ProxyError as e:
            return self._error_response(e)

        except Exception as e:
            fail(_LOG, "request_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
            self._metrics.record_request("internal_error")
            return ProxyResponse.json(500, {"error": "Internal server error"}, self.cors_headers())

    # =========================================================================
    # Upstream fetch and cache store
    # =========================================================================

    async def _fetch(self, text: str) -> ProxyResponse:
        """Fetch on a miss, sharing concurrent fetches for the same text."""
        if not self._config.cache.single_flight:
            return await self._fetch_and_store(text)

        response, shared = await self._flights.do(text, lambda: self._fetch_and_store(text))
        if shared:
            self._metrics.inc_singleflight_joins()
        return response

    async def _fetch_and_store(self, text: str) -> ProxyResponse:
        """
        Call upstream, build the audio response and cache it.

        Raises:
            UpstreamRejection: Provider answered non-2xx (status mapped
                per upstream.rejection_status).
            TransportFailure: Provider unreachable.
        """
        try:
            with timeit("upstream") as t:
                audio = await self._upstream.fetch(text)
        except UpstreamRejection as e:
            warn(_LOG, "upstream_rejected", upstream_status=e.upstream_status, seconds=round(t.seconds, 3))
            self._metrics.record_upstream_error("rejected")
            if self._config.upstream.rejection_status == "bad_gateway":
                raise UpstreamRejection(e.upstream_status, BAD_GATEWAY) from e
            raise
        except TransportFailure as e:
            warn(_LOG, "upstream_transport_failed", error=e.reason, seconds=round(t.seconds, 3))
            self._metrics.record_upstream_error("transport")
            raise

        verbose(_LOG, "upstream_fetch", event="upstream", bytes=len(audio), seconds=round(t.seconds, 4))
        self._metrics.observe_upstream(t.seconds, audio_bytes=len(audio))

        headers = self.cors_headers()
        headers["Cache-Control"] = self._config.response.cache_control
        response = ProxyResponse.audio(audio, headers)

        self._cache.set(text, response)
        self._metrics.set_cache_entries(len(self._cache))
        success(_LOG, "set", bytes=len(audio), size=len(self._cache))
        return response

    def _error_response(self, e: ProxyError) -> ProxyResponse:
        """Render a ProxyError as a JSON response and count it."""
        if isinstance(e, ClientInputError):
            outcome = "bad_request"
            if e.code == ErrorCode.MISSING_PARAM:
                info(_LOG, "missing_param", status=e.status_code)
            else:
                info(_LOG, "bad_request", code=e.code, status=e.status_code)
        elif isinstance(e, UpstreamRejection):
            outcome = "upstream_error"
        elif isinstance(e, TransportFailure):
            outcome = "transport_error"
        else:
            outcome = "internal_error"
            fail(_LOG, "proxy_error", code=e.code, error=e.message)

        self._metrics.record_request(outcome)
        return ProxyResponse.json(e.status_code, e.to_body(), self.cors_headers())

    # =========================================================================
    # Health Check
    # =========================================================================

    def get_health_info(self) -> Dict[str, Any]:
        """
        Service status for /health.

        Returns:
            Dictionary with upstream host and language, cache statistics,
            single-flight setting and in-flight fetch count.
        """
        return {
            "ok": True,
            "upstream": self._upstream.host,
            "language": self._config.upstream.language,
            "cache": self._cache.stats(),
            "single_flight": self._config.cache.single_flight,
            "in_flight": self._flights.in_flight,
        }


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[TTSProxyService] = None
_service_lock = threading.Lock()


def get_service(settings: Optional[Settings] = None) -> TTSProxyService:
    """
    Get or create the process-wide TTSProxyService.

    The service (and therefore the cache) is created on the first call:
    at server startup, or on the first invocation of a function instance.
    Settings are only read at that point; when none are passed they are
    loaded with load_settings_or_defaults(). Later calls reuse the
    service without touching the settings file.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                if settings is None:
                    settings = load_settings_or_defaults()
                _service = TTSProxyService(ProxyConfig.from_settings(settings))
    return _service


def reset_service() -> None:
    """
    Drop the global service instance.

    The next get_service() call starts with an empty cache, like a cold
    start. Used by tests.
    """
    global _service
    with _service_lock:
        _service = None


__all__ = [
    "TTSProxyService",
    "ProxyRequest",
    "ProxyError",
    "ClientInputError",
    "UpstreamRejection",
    "TransportFailure",
    "ErrorCode",
    "get_service",
    "reset_service",
]
