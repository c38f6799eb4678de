"""
TTS Proxy API Routes.

Endpoints:
    GET     /tts?q=<text>  - Audio for the text (audio/mpeg) or a JSON error
    OPTIONS /tts           - CORS preflight, answered without touching cache or upstream
    GET     /health        - Health and cache statistics
    GET     /metrics       - Prometheus metrics

Response contract for /tts:
    missing q          400  {"error": "Missing query parameter: q"}
    preflight          200  empty body, CORS method/header declarations
    cache hit / miss   200  audio bytes, Cache-Control: public, max-age=31536000, immutable
    upstream non-2xx   upstream status (or 502)  {"error": ..., "statusCode": n}
    transport failure  500  {"error": "Failed to fetch from TTS service.", "details": ...}

Every /tts response carries Access-Control-Allow-Origin so a front end
served from another port can fetch audio directly.

Example:
    curl "http://localhost:4001/tts?q=%E1%80%99%E1%80%84%E1%80%BA" --output word.mp3
"""
from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Response
from fastapi.responses import FileResponse

from tts_proxy.api.dependencies import get_proxy_service
from tts_proxy.api.schemas import ErrorBody, HealthResponse
from tts_proxy.core.logging import get_logger, info
from tts_proxy.core.metrics import metrics
from tts_proxy.services.proxy_service import ProxyRequest, TTSProxyService

router = APIRouter()

_LOG = get_logger("tts-proxy.api")

_TTS_RESPONSES = {
    200: {"content": {"audio/mpeg": {}}, "description": "MP3 audio for the text"},
    400: {"model": ErrorBody, "description": "Missing query parameter"},
    500: {"model": ErrorBody, "description": "Upstream unreachable"},
    502: {"model": ErrorBody, "description": "Upstream rejected the request"},
}


async def _proxy(service: TTSProxyService, method: str, q: Optional[str]) -> Response:
    rid = uuid.uuid4().hex[:12]
    result = await service.handle(ProxyRequest(method=method, text=q), rid)
    return result.with_headers({"X-Request-Id": rid}).to_asgi()


@router.get("/tts", response_class=Response, responses=_TTS_RESPONSES)
async def tts(
    q: Optional[str] = Query(default=None, description="Text to speak (exact, case-sensitive)"),
    service: TTSProxyService = Depends(get_proxy_service),
):
    """
    Fetch speech audio for a text.

    Repeated requests for exactly the same text are answered from the
    in-memory cache without calling the upstream provider.
    """
    return await _proxy(service, "GET", q)


@router.options("/tts", response_class=Response)
async def tts_preflight(
    q: Optional[str] = Query(default=None),
    service: TTSProxyService = Depends(get_proxy_service),
):
    """CORS preflight for /tts. Always 200, regardless of q."""
    return await _proxy(service, "OPTIONS", q)


@router.get("/health", response_model=HealthResponse)
def health(service: TTSProxyService = Depends(get_proxy_service)):
    """Health check for load balancers and local tooling."""
    return service.get_health_info()


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)


def mount_frontend(app: FastAPI, static_dir: str) -> bool:
    """
    Serve a built single-page front end from static_dir.

    Any GET path not claimed by an API route returns the matching file
    from static_dir, or index.html so client-side routing keeps working.
    Must be called after the API routes are registered.

    Returns:
        True if the directory exists and the route was added.
    """
    root = Path(static_dir).resolve()
    index = root / "index.html"
    if not root.is_dir():
        return False

    @app.get("/{full_path:path}", include_in_schema=False)
    def frontend(full_path: str):
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(root):
            return FileResponse(candidate)
        if index.is_file():
            return FileResponse(index)
        raise HTTPException(status_code=404, detail="Not Found")

    info(_LOG, "frontend_mounted", static_dir=str(root))
    return True
