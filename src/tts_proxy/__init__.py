"""
tts-proxy: Rate-limited streaming Text-to-Speech proxy.

A small HTTP service that accepts text, asks an external speech provider
(AWS Polly) to synthesize it, and streams the MP3 audio back to the caller
chunk by chunk. Every caller gets a fixed daily quota that is tracked in
memory and reported through RateLimit-* response headers.

Key Features:
    - POST /api/speech streams provider audio without buffering it
    - Per-client daily quota with lazy window reset (default 12/day)
    - GET /api/rate-limit-status reads the quota without consuming it
    - Structured logging with request ID correlation
    - Prometheus metrics at /metrics

Example Usage:
    >>> from tts_proxy.services.quota_store import QuotaStore
    >>>
    >>> store = QuotaStore(limit=12, window_seconds=86400)
    >>> decision = store.check_and_increment("203.0.113.7")
    >>> decision.allowed, decision.remaining
    (True, 11)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
