"""
Tests for error classes and the JSON error body.

Tests cover:
- ErrorCode values
- ProxyError creation and serialization (to_dict)
- HTTP status carried by each subclass
- Exception inheritance
"""
import pytest

from tts_proxy.core.errors import (
    ErrorCode,
    ProviderError,
    ProxyError,
    QuotaExceededError,
    ValidationError,
)
from tts_proxy.services.quota_store import QuotaDecision


class TestErrorCode:
    def test_codes(self):
        assert ErrorCode.INVALID_INPUT == "INVALID_INPUT"
        assert ErrorCode.TEXT_REQUIRED == "TEXT_REQUIRED"
        assert ErrorCode.TEXT_TOO_LONG == "TEXT_TOO_LONG"
        assert ErrorCode.QUOTA_EXCEEDED == "QUOTA_EXCEEDED"
        assert ErrorCode.PROVIDER_FAILED == "PROVIDER_FAILED"
        assert ErrorCode.INTERNAL_ERROR == "INTERNAL_ERROR"


class TestProxyError:
    def test_message_and_defaults(self):
        error = ProxyError("Something broke")
        assert error.message == "Something broke"
        assert str(error) == "Something broke"
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500

    def test_to_dict_without_details(self):
        assert ProxyError("Oops").to_dict() == {"error": "Oops"}

    def test_to_dict_with_details(self):
        error = ProxyError("Oops", details="more context")
        assert error.to_dict() == {"error": "Oops", "details": "more context"}

    def test_status_override(self):
        assert ProxyError("Teapot", status_code=418).status_code == 418

    def test_status_override_is_per_instance(self):
        ProxyError("Teapot", status_code=418)
        assert ProxyError("Plain").status_code == 500


class TestSubclasses:
    def test_validation_error(self):
        error = ValidationError("Text is required", ErrorCode.TEXT_REQUIRED)
        assert error.status_code == 400
        assert error.code == ErrorCode.TEXT_REQUIRED
        assert isinstance(error, ProxyError)

    def test_quota_exceeded_error(self):
        decision = QuotaDecision(False, 0, 12, 10.0)
        error = QuotaExceededError("Rate limit exceeded.", decision=decision)
        assert error.status_code == 429
        assert error.code == ErrorCode.QUOTA_EXCEEDED
        assert error.decision is decision

    def test_provider_error(self):
        error = ProviderError("Access denied", provider_code="AccessDeniedException")
        assert error.status_code == 500
        assert error.code == ErrorCode.PROVIDER_FAILED
        assert error.provider_code == "AccessDeniedException"

    def test_catchable_as_base(self):
        with pytest.raises(ProxyError):
            raise ProviderError("x")
