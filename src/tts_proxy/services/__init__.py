"""
tts-proxy Services Layer.

Business logic between the HTTP layer and the speech provider.

Components:
    - quota_store.py: QuotaStore (per-client admission counter)
    - synthesis.py: SynthesisProxy (validate, call provider, stream)
    - validators.py: Input validation functions
"""
from .quota_store import QuotaDecision, QuotaRecord, QuotaStore
from .synthesis import OpenedStream, SynthesisProxy, SynthesisRequest

__all__ = [
    "QuotaStore",
    "QuotaRecord",
    "QuotaDecision",
    "SynthesisProxy",
    "SynthesisRequest",
    "OpenedStream",
]
