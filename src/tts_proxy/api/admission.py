"""
Admission Gate for the Synthesis Route.

The gate runs as a FastAPI dependency on POST /api/speech only. It
derives the caller's identity, asks the QuotaStore to admit the request,
and either raises QuotaExceededError (turned into a 429 by the exception
handler registered in main.py) or hands the QuotaDecision to the route so
the same quota headers end up on the streamed response.

Headers (IETF RateLimit header fields draft, as sent by express-rate-limit):
    RateLimit-Limit: 12
    RateLimit-Remaining: 11
    RateLimit-Reset: 86400     # seconds until the window ends
    Retry-After: 86400         # 429 responses only

Client Identity:
    The peer address of the connection. With quota.trust_proxy enabled
    the left-most X-Forwarded-For entry is used instead, which is only
    safe behind a reverse proxy that overwrites that header.
"""
from __future__ import annotations

import math
from typing import Dict

from fastapi import Request
from fastapi.responses import JSONResponse

from tts_proxy.core.errors import QuotaExceededError
from tts_proxy.core.logging import get_logger, verbose, warn
from tts_proxy.core.metrics import metrics
from tts_proxy.services.quota_store import QuotaDecision, QuotaStore

_LOG = get_logger("tts-proxy.admission")

UNKNOWN_CLIENT = "unknown"


def client_identity(request: Request, trust_proxy: bool = False) -> str:
    """
    Derive the quota identity for a request.

    Args:
        request: Incoming request.
        trust_proxy: Prefer the first X-Forwarded-For address.

    Returns:
        Identity string (an IP address, or "unknown").
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def quota_headers(decision: QuotaDecision) -> Dict[str, str]:
    """Build the RateLimit-* headers for a decision."""
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(math.ceil(decision.reset_after)),
    }
    if not decision.allowed:
        headers["Retry-After"] = headers["RateLimit-Reset"]
    return headers


def rate_limit_message(limit: int) -> str:
    return f"Rate limit exceeded. You can only make {limit} requests per day."


class AdmissionGate:
    """
    Enforces the QuotaStore verdict at the HTTP boundary.

    Attributes:
        store: The shared QuotaStore.
        trust_proxy: Whether X-Forwarded-For decides the client identity.
    """

    def __init__(self, store: QuotaStore, trust_proxy: bool = False):
        self.store = store
        self.trust_proxy = trust_proxy

    def admit(self, request: Request) -> QuotaDecision:
        """
        Consume one unit of quota for the caller or reject the request.

        Returns:
            The admitting QuotaDecision.

        Raises:
            QuotaExceededError: If the caller has no quota left.
        """
        identity = client_identity(request, self.trust_proxy)
        decision = self.store.check_and_increment(identity)
        metrics.set_quota_identities(len(self.store))

        if not decision.allowed:
            metrics.record_quota_rejection()
            warn(_LOG, "quota_rejected", client=identity, remaining=0,
                 reset_s=math.ceil(decision.reset_after))
            raise QuotaExceededError(rate_limit_message(decision.limit), decision=decision)

        verbose(_LOG, "quota_admitted", client=identity, remaining=decision.remaining)
        return decision

    def status(self, request: Request) -> QuotaDecision:
        """Read the caller's quota without consuming any."""
        return self.store.peek(client_identity(request, self.trust_proxy))


def quota_exceeded_response(exc: QuotaExceededError) -> JSONResponse:
    """Build the 429 response for a rejected request."""
    headers = quota_headers(exc.decision) if exc.decision is not None else {"RateLimit-Remaining": "0"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
