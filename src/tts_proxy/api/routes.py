"""
Proxy API Routes.

Endpoints:
    GET  /health                 - Liveness check, never consumes quota
    GET  /api/rate-limit-status  - Caller's quota, never consumes quota
    POST /api/speech             - Rate-limited streaming synthesis (audio/mpeg)
    GET  /metrics                - Prometheus metrics

Request Flow (POST /api/speech):
    1. Bind a request ID for log correlation
    2. Admission: consume one unit of quota or reject with 429
    3. Validate text and voice (400 on failure, quota stays consumed)
    4. Call the provider and read the first chunk (500 on failure)
    5. Commit 200 and forward the remaining chunks as they arrive

Error Handling:
    Every error is JSON with the same shape:
    {
        "error": "<human readable message>",
        "details": "<optional detail>"
    }

    400 - Text is required / Text too long / Invalid voice / Invalid request body
    429 - Rate limit exceeded (raised by the admission dependency)
    500 - Failed to synthesize speech (provider) / Internal server error

Example Usage:
    curl -X POST http://localhost:3001/api/speech \\
        -H "Content-Type: application/json" \\
        -d '{"text": "Hello there", "voice": "Joanna"}' \\
        --output speech.mp3
"""
from __future__ import annotations

import math
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from tts_proxy.api.admission import AdmissionGate, quota_headers
from tts_proxy.api.dependencies import (
    admit,
    get_admission_gate,
    get_app_config,
    get_synthesis_proxy,
    new_request_id,
)
from tts_proxy.api.schemas import ErrorResponse, HealthResponse, RateLimitStatus, SpeechRequest
from tts_proxy.core.config import AppConfig
from tts_proxy.core.errors import ProviderError, ValidationError
from tts_proxy.core.logging import error, get_logger, info, warn
from tts_proxy.core.metrics import metrics
from tts_proxy.services.quota_store import QuotaDecision
from tts_proxy.services.synthesis import SynthesisProxy

router = APIRouter()

_LOG = get_logger("tts-proxy.api")

HEALTH_MESSAGE = "Polly TTS API is running"
AUDIO_MEDIA_TYPE = "audio/mpeg"
SYNTHESIS_FAILED = "Failed to synthesize speech"

SPEECH_ROUTE = "/api/speech"
STATUS_ROUTE = "/api/rate-limit-status"


@router.get("/health", response_model=HealthResponse)
def health():
    """Liveness check for load balancers and the web client."""
    metrics.record_request("/health", 200)
    return HealthResponse(status="OK", message=HEALTH_MESSAGE)


@router.get(STATUS_ROUTE, response_model=RateLimitStatus)
def rate_limit_status(request: Request, gate: AdmissionGate = Depends(get_admission_gate)):
    """
    Report the caller's quota without consuming any.

    The body mirrors the RateLimit-* headers so browser clients can read
    the numbers without CORS header exposure.
    """
    decision = gate.status(request)
    body = RateLimitStatus(
        limit=decision.limit,
        remaining=decision.remaining,
        reset_seconds=math.ceil(decision.reset_after),
    )
    metrics.record_request(STATUS_ROUTE, 200)
    return JSONResponse(content=body.model_dump(), headers=quota_headers(decision))


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid text, voice or body"},
    429: {"model": ErrorResponse, "description": "Daily quota exhausted"},
    500: {"model": ErrorResponse, "description": "Provider or internal failure"},
}


@router.post(SPEECH_ROUTE, response_class=StreamingResponse, responses=ERROR_RESPONSES)
async def speech(
    request: Request,
    body: Optional[SpeechRequest] = None,
    rid: str = Depends(new_request_id),
    decision: QuotaDecision = Depends(admit),
    proxy: SynthesisProxy = Depends(get_synthesis_proxy),
    config: AppConfig = Depends(get_app_config),
):
    """
    Synthesize speech and stream it back as MP3.

    Quota is consumed by the admit dependency before the body is looked at,
    so rejected bodies still count against the caller.

    Returns:
        StreamingResponse: audio/mpeg chunks with headers:
            - X-Request-Id: Unique request identifier for tracing
            - RateLimit-Limit / RateLimit-Remaining / RateLimit-Reset
            - Content-Disposition: inline
    """
    headers = {"X-Request-Id": rid, **quota_headers(decision)}
    body = body or SpeechRequest()

    try:
        req = proxy.prepare(body.text, body.voice)
        info(_LOG, "speech_request", chars=len(req.text), voice=req.voice, remaining=decision.remaining,
             preview=req.text[: config.logging.text_preview_chars])
        opened = await proxy.open(req)

    except ValidationError as e:
        warn(_LOG, "speech_rejected", code=e.code, error=e.message)
        metrics.record_request(SPEECH_ROUTE, e.status_code)
        return JSONResponse(status_code=e.status_code, content=e.to_dict(), headers=headers)

    except ProviderError as e:
        error(_LOG, "synthesis_failed", code=e.provider_code, error=e.message)
        metrics.record_request(SPEECH_ROUTE, 500)
        return JSONResponse(
            status_code=500,
            content={"error": SYNTHESIS_FAILED, "details": e.message},
            headers=headers,
        )

    except Exception as e:
        error(_LOG, "internal_error", exc_type=type(e).__name__, error=str(e))
        metrics.record_request(SPEECH_ROUTE, 500)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
            headers=headers,
        )

    headers["Content-Disposition"] = "inline"
    metrics.record_request(SPEECH_ROUTE, 200)
    return StreamingResponse(
        proxy.pump(opened, request.is_disconnected),
        media_type=AUDIO_MEDIA_TYPE,
        headers=headers,
        background=BackgroundTask(opened.stream.close),
    )


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
