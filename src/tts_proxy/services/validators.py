"""
Input Validation for the TTS Proxy.

The only input is the q query parameter. It must be present and
non-empty. It is NOT stripped or case-folded: the exact string is both
the cache key and the text sent upstream.

An optional length cap (validation.max_text_chars) protects the proxy
when it is exposed to free text rather than a fixed vocabulary; it is
off by default.

Usage:
    from tts_proxy.services.validators import validate_text

    text = validate_text(query.get("q"), max_length=200)
"""
from __future__ import annotations

from typing import Optional

from tts_proxy.core.errors import ClientInputError, ErrorCode

MISSING_PARAM_MESSAGE = "Missing query parameter: q"


def validate_text(text: Optional[str], max_length: int = 0) -> str:
    """
    Validate the q parameter.

    Args:
        text: Raw parameter value (None when absent).
        max_length: Maximum characters allowed (0 = unlimited).

    Returns:
        The text, unchanged.

    Raises:
        ClientInputError: If the text is missing, empty, or too long.
    """
    if not text:
        raise ClientInputError(MISSING_PARAM_MESSAGE, ErrorCode.MISSING_PARAM)

    if max_length > 0 and len(text) > max_length:
        raise ClientInputError(
            f"Query parameter q exceeds maximum length ({len(text)} > {max_length})",
            ErrorCode.TEXT_TOO_LONG,
            {"maxLength": max_length},
        )

    return text
