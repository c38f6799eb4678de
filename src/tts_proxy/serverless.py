"""
Serverless Function Entry Point.

Adapts TTSProxyService to function hosts (Netlify Functions, AWS Lambda
behind API Gateway) that pass the request as an event dictionary and
expect a dictionary back:

    event:    {"httpMethod": "GET", "path": "/tts",
               "queryStringParameters": {"q": "..."}}
    returns:  {"statusCode": 200, "headers": {...},
               "body": "<base64>", "isBase64Encoded": True}

The service is created on the first invocation and kept at module level,
so the cache lives exactly as long as the warm function instance. Cold
starts begin with an empty cache.

Each invocation runs service.handle() on its own event loop; the
upstream client opens a fresh connection per fetch, so nothing is tied
to a loop that has already closed.
"""
from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, Mapping, Optional

from tts_proxy.core.logging import configure_logging, get_logger, verbose
from tts_proxy.services.proxy_service import ProxyRequest, get_service

_LOG = get_logger("tts-proxy.serverless")


def _request_id(context: Any) -> str:
    """Use the host's invocation id when it provides one."""
    rid = getattr(context, "aws_request_id", None)
    if rid:
        return str(rid)[:36]
    return uuid.uuid4().hex[:12]


def handler(event: Optional[Mapping[str, Any]], context: Any = None) -> Dict[str, Any]:
    """
    Handle one function invocation.

    Args:
        event: Host event with httpMethod, path and queryStringParameters
            (the latter may be None when the URL has no query string).
        context: Host context object (unused apart from the request id).

    Returns:
        Dictionary with statusCode, headers, body and isBase64Encoded.
    """
    configure_logging()
    event = event or {}

    request = ProxyRequest.from_query(
        event.get("httpMethod") or "GET",
        event.get("queryStringParameters"),
        event.get("path") or "/tts",
    )
    rid = _request_id(context)
    verbose(_LOG, "invocation", method=request.method, path=request.path)

    service = get_service()
    response = asyncio.run(service.handle(request, rid))
    return response.to_serverless()
