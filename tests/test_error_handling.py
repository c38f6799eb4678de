"""
Tests for error classes and input validation.

Tests cover:
- ErrorCode values
- Exact JSON bodies for each error kind
- Status codes, including the bad-gateway override
- q parameter validation
"""
import pytest

from tts_proxy.core.errors import (
    ClientInputError,
    ErrorCode,
    ProxyError,
    TransportFailure,
    UpstreamRejection,
)
from tts_proxy.services.validators import MISSING_PARAM_MESSAGE, validate_text


class TestErrorCode:

    def test_codes(self):
        assert ErrorCode.MISSING_PARAM == "MISSING_PARAM"
        assert ErrorCode.TEXT_TOO_LONG == "TEXT_TOO_LONG"
        assert ErrorCode.UPSTREAM_REJECTED == "UPSTREAM_REJECTED"
        assert ErrorCode.UPSTREAM_UNREACHABLE == "UPSTREAM_UNREACHABLE"
        assert ErrorCode.INTERNAL_ERROR == "INTERNAL_ERROR"


class TestProxyError:

    def test_defaults(self):
        error = ProxyError("Something broke")
        assert error.message == "Something broke"
        assert str(error) == "Something broke"
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.to_body() == {"error": "Something broke"}

    def test_subclasses_are_proxy_errors(self):
        for error in (ClientInputError("x"), UpstreamRejection(403), TransportFailure("y")):
            assert isinstance(error, ProxyError)
            assert isinstance(error, Exception)


class TestClientInputError:

    def test_is_400(self):
        error = ClientInputError(MISSING_PARAM_MESSAGE)
        assert error.status_code == 400
        assert error.code == ErrorCode.MISSING_PARAM
        assert error.to_body() == {"error": "Missing query parameter: q"}


class TestUpstreamRejection:

    def test_mirrors_status(self):
        error = UpstreamRejection(403)
        assert error.status_code == 403
        assert error.upstream_status == 403
        assert error.to_body() == {
            "error": "Failed to fetch audio from Google TTS service.",
            "statusCode": 403,
        }

    def test_status_override(self):
        error = UpstreamRejection(429, status_code=502)
        assert error.status_code == 502
        assert error.to_body()["statusCode"] == 429


class TestTransportFailure:

    def test_body(self):
        error = TransportFailure("getaddrinfo ENOTFOUND translate.google.com")
        assert error.status_code == 500
        assert error.reason == "getaddrinfo ENOTFOUND translate.google.com"
        assert error.to_body() == {
            "error": "Failed to fetch from TTS service.",
            "details": "getaddrinfo ENOTFOUND translate.google.com",
        }


class TestValidateText:

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        with pytest.raises(ClientInputError) as exc_info:
            validate_text(value)
        assert exc_info.value.message == MISSING_PARAM_MESSAGE

    @pytest.mark.parametrize("value", [" ", "ကြောင်", "Hello ", "0"])
    def test_present_values_are_returned_unchanged(self, value):
        assert validate_text(value) == value

    def test_length_cap(self):
        assert validate_text("abcde", max_length=5) == "abcde"
        with pytest.raises(ClientInputError) as exc_info:
            validate_text("abcdef", max_length=5)
        assert exc_info.value.code == ErrorCode.TEXT_TOO_LONG
        assert exc_info.value.to_body()["maxLength"] == 5

    def test_length_counts_characters_not_bytes(self):
        text = "မင်္ဂလာပါ"
        assert validate_text(text, max_length=len(text)) == text
