"""
Error Taxonomy for the TTS Proxy.

Every expected failure is a ProxyError carrying the HTTP status and the
JSON body the client will see. Errors are raised where they are detected
(validation, upstream client) and turned into responses in one place,
TTSProxyService.handle().

    ClientInputError   400  missing or oversized q parameter
    UpstreamRejection  upstream status (or 502)  provider answered non-2xx
    TransportFailure   500  provider could not be reached

None of these are retried by the proxy and none are ever cached.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """
    Machine-readable error codes, used in logs and metrics.

    The wire body keeps the plain {"error": ...} shape the front end
    already understands; codes are not part of it.
    """
    MISSING_PARAM = "MISSING_PARAM"
    TEXT_TOO_LONG = "TEXT_TOO_LONG"
    UPSTREAM_REJECTED = "UPSTREAM_REJECTED"
    UPSTREAM_UNREACHABLE = "UPSTREAM_UNREACHABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ProxyError(Exception):
    """
    Base exception for proxy failures.

    Attributes:
        message: Human-readable message, sent as the "error" field.
        code: Value from ErrorCode.
        status_code: HTTP status for the response.
        details: Extra fields merged into the JSON body.
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_body(self) -> Dict[str, Any]:
        """JSON body for the error response."""
        body: Dict[str, Any] = {"error": self.message}
        body.update(self.details)
        return body


class ClientInputError(ProxyError):
    """Raised when the q parameter is missing, empty, or too long."""

    def __init__(self, message: str, code: str = ErrorCode.MISSING_PARAM, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code, 400, details)


class UpstreamRejection(ProxyError):
    """
    Raised when the TTS provider answers with a non-2xx status.

    Attributes:
        upstream_status: Status code the provider returned.
    """

    def __init__(self, upstream_status: int, status_code: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(
            "Failed to fetch audio from Google TTS service.",
            ErrorCode.UPSTREAM_REJECTED,
            upstream_status if status_code is None else status_code,
            {"statusCode": upstream_status},
        )


class TransportFailure(ProxyError):
    """Raised when the provider cannot be reached (DNS, reset, timeout)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            "Failed to fetch from TTS service.",
            ErrorCode.UPSTREAM_UNREACHABLE,
            500,
            {"details": reason},
        )
