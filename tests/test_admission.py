"""Tests for the admission gate, client identity and quota headers."""
from __future__ import annotations

import pytest
from starlette.requests import Request

from tts_proxy.api.admission import (
    AdmissionGate,
    client_identity,
    quota_exceeded_response,
    quota_headers,
    rate_limit_message,
)
from tts_proxy.core.errors import QuotaExceededError
from tts_proxy.services.quota_store import QuotaDecision


def make_request(host="10.0.0.1", headers=None) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/speech",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (host, 51000) if host else None,
    }
    return Request(scope)


class TestClientIdentity:
    def test_peer_address(self):
        assert client_identity(make_request("203.0.113.7")) == "203.0.113.7"

    def test_forwarded_ignored_by_default(self):
        req = make_request("10.0.0.1", {"X-Forwarded-For": "198.51.100.4"})
        assert client_identity(req) == "10.0.0.1"

    def test_forwarded_used_when_trusted(self):
        req = make_request("10.0.0.1", {"X-Forwarded-For": "198.51.100.4, 10.0.0.1"})
        assert client_identity(req, trust_proxy=True) == "198.51.100.4"

    def test_empty_forwarded_falls_back_to_peer(self):
        req = make_request("10.0.0.1", {"X-Forwarded-For": " "})
        assert client_identity(req, trust_proxy=True) == "10.0.0.1"

    def test_missing_client_is_unknown(self):
        assert client_identity(make_request(host=None)) == "unknown"


class TestQuotaHeaders:
    def test_admitted_headers(self):
        headers = quota_headers(QuotaDecision(True, 11, 12, 86400.0))
        assert headers == {
            "RateLimit-Limit": "12",
            "RateLimit-Remaining": "11",
            "RateLimit-Reset": "86400",
        }

    def test_reset_rounds_up(self):
        headers = quota_headers(QuotaDecision(True, 3, 12, 0.2))
        assert headers["RateLimit-Reset"] == "1"

    def test_rejected_adds_retry_after(self):
        headers = quota_headers(QuotaDecision(False, 0, 12, 120.5))
        assert headers["Retry-After"] == "121"
        assert headers["RateLimit-Remaining"] == "0"


class TestAdmissionGate:
    def test_admit_returns_decision(self, store):
        gate = AdmissionGate(store)
        decision = gate.admit(make_request())
        assert decision.allowed
        assert decision.remaining == 11

    def test_admit_raises_when_exhausted(self, store):
        gate = AdmissionGate(store)
        for _ in range(12):
            gate.admit(make_request())

        with pytest.raises(QuotaExceededError) as exc_info:
            gate.admit(make_request())

        exc = exc_info.value
        assert exc.status_code == 429
        assert exc.message == rate_limit_message(12)
        assert exc.decision.allowed is False

    def test_trusted_proxy_separates_clients(self, store):
        """Behind a proxy every client shares the peer address; the header tells them apart."""
        gate = AdmissionGate(store, trust_proxy=True)
        for _ in range(12):
            gate.admit(make_request("10.0.0.1", {"X-Forwarded-For": "198.51.100.4"}))

        decision = gate.admit(make_request("10.0.0.1", {"X-Forwarded-For": "198.51.100.5"}))
        assert decision.remaining == 11

    def test_status_does_not_consume(self, store):
        gate = AdmissionGate(store)
        gate.admit(make_request())
        for _ in range(5):
            assert gate.status(make_request()).remaining == 11


class TestQuotaExceededResponse:
    def test_response_shape(self):
        exc = QuotaExceededError(rate_limit_message(12), decision=QuotaDecision(False, 0, 12, 60.0))
        resp = quota_exceeded_response(exc)
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "60"
        assert b"Rate limit exceeded. You can only make 12 requests per day." in resp.body
