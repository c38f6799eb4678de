"""
API Response Schemas.

Pydantic models describing the JSON bodies the proxy returns. They drive
the OpenAPI documentation and the /health response model; the error
bodies themselves are produced by ProxyError.to_body() so both
deployment shapes emit byte-identical JSON.

Error bodies:
    {"error": "Missing query parameter: q"}
    {"error": "Failed to fetch audio from Google TTS service.", "statusCode": 403}
    {"error": "Failed to fetch from TTS service.", "details": "..."}
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    """JSON error body returned with any non-2xx status."""
    error: str = Field(..., description="Human-readable error message")
    statusCode: int | None = Field(default=None, description="Status returned by the upstream provider")
    details: str | None = Field(default=None, description="Transport failure detail")
    maxLength: int | None = Field(default=None, description="Configured text length cap")


class CacheStats(BaseModel):
    """Response cache counters."""
    hits: int
    misses: int
    size: int
    max_items: int = Field(..., description="0 = unbounded")
    ttl_seconds: int = Field(..., description="0 = entries never expire")
    expirations: int
    evictions: int


class HealthResponse(BaseModel):
    """Body of GET /health."""
    ok: bool
    upstream: str = Field(..., description="Upstream TTS host")
    language: str = Field(..., description="Language code sent upstream")
    cache: CacheStats
    single_flight: bool
    in_flight: int = Field(..., description="Upstream fetches currently running")
