"""
Internal Response Type and Transport Encoders.

Every request handled by TTSProxyService ends in exactly one
ProxyResponse: a status code, a header mapping and raw body bytes. The
same object is what the cache stores. Transport-specific encoding
happens only at the edges:

    to_asgi()        -> starlette Response for the long-running server
    to_serverless()  -> {"statusCode", "headers", "body", "isBase64Encoded"}
                        for function hosts that cannot return raw binary

Example:
    >>> resp = ProxyResponse.audio(b"\\x01\\x02\\x03", {"Cache-Control": "no-store"})
    >>> resp.to_serverless()["body"]
    'AQID'
"""
from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping

from starlette.responses import Response

AUDIO_MEDIA_TYPE = "audio/mpeg"
JSON_MEDIA_TYPE = "application/json"


@dataclass(frozen=True)
class ProxyResponse:
    """
    A fully prepared response.

    Attributes:
        status_code: HTTP status.
        headers: Response headers, including Content-Type when there is a body.
        body: Raw payload bytes (audio, UTF-8 JSON, or empty).
        is_binary: True when body must be base64-encoded for text-only transports.
    """
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    is_binary: bool = False

    @classmethod
    def audio(cls, data: bytes, headers: Mapping[str, str] | None = None, status_code: int = 200) -> "ProxyResponse":
        """Build an audio/mpeg response."""
        merged = {"Content-Type": AUDIO_MEDIA_TYPE}
        merged.update(headers or {})
        return cls(status_code=status_code, headers=merged, body=bytes(data), is_binary=True)

    @classmethod
    def json(cls, status_code: int, payload: Mapping[str, Any], headers: Mapping[str, str] | None = None) -> "ProxyResponse":
        """Build a JSON response with a compact UTF-8 body."""
        merged = dict(headers or {})
        merged["Content-Type"] = JSON_MEDIA_TYPE
        body = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        return cls(status_code=status_code, headers=merged, body=body)

    @classmethod
    def empty(cls, status_code: int = 200, headers: Mapping[str, str] | None = None) -> "ProxyResponse":
        return cls(status_code=status_code, headers=dict(headers or {}))

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    def with_headers(self, extra: Mapping[str, str]) -> "ProxyResponse":
        """
        Return a copy with extra headers merged over the existing ones.

        The stored instance is never mutated, so a cached entry stays
        exactly as it was stored.
        """
        merged = dict(self.headers)
        merged.update(extra)
        return replace(self, headers=merged)

    def json_body(self) -> Any:
        """Decode a JSON body (for tests and the CLI)."""
        return json.loads(self.body.decode("utf-8")) if self.body else None

    # ─────────────────────────────────────────────────────────────────────────
    # Transport encoders
    # ─────────────────────────────────────────────────────────────────────────

    def to_asgi(self) -> Response:
        """Encode for the long-running server: raw bytes, headers as-is."""
        headers = {k: v for k, v in self.headers.items() if k.lower() != "content-type"}
        return Response(
            content=self.body,
            status_code=self.status_code,
            headers=headers,
            media_type=self.content_type,
        )

    def to_serverless(self) -> Dict[str, Any]:
        """
        Encode for a function host.

        Binary bodies are base64-encoded and flagged with
        isBase64Encoded; text bodies are passed through as strings.
        """
        if self.is_binary:
            body = base64.b64encode(self.body).decode("ascii")
        else:
            body = self.body.decode("utf-8")
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": body,
            "isBase64Encoded": self.is_binary,
        }
