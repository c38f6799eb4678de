"""
tts-proxy Services Layer.

The business logic between the transports (FastAPI routes, serverless
handler, CLI) and the proxy building blocks.

Components:
    - proxy_service.py: TTSProxyService (preflight, validation, cache,
      upstream fetch, error translation)
    - validators.py: q parameter validation
"""
from .proxy_service import (
    ClientInputError,
    ErrorCode,
    ProxyError,
    ProxyRequest,
    TransportFailure,
    TTSProxyService,
    UpstreamRejection,
    get_service,
    reset_service,
)

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
