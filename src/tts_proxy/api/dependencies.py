"""
FastAPI Dependency Injection Providers.

Architecture:
    The dependency system follows this hierarchy:
        1. get_settings() - Loads and caches raw settings
        2. get_app_config() - Validated AppConfig
        3. get_quota_store() - The process-wide QuotaStore
        4. get_speech_provider() - The external speech provider
        5. get_admission_gate() / get_synthesis_proxy() - Per-request wiring
        6. admit() - Consumes quota for POST /api/speech

    The store and provider are singletons: the quota map must be shared by
    every request, and the boto3 client keeps a connection pool.

Testing:
    Tests swap pieces with app.dependency_overrides, e.g.

        app.dependency_overrides[get_quota_store] = lambda: store
        app.dependency_overrides[get_speech_provider] = lambda: FakeProvider()
"""
from __future__ import annotations

import os
import uuid
from functools import lru_cache

from fastapi import Depends, Request

from tts_proxy.api.admission import AdmissionGate
from tts_proxy.core.config import AppConfig, Settings, apply_env_overrides, load_settings
from tts_proxy.core.logging import get_logger, set_request_id, warn
from tts_proxy.services.quota_store import QuotaDecision, QuotaStore
from tts_proxy.services.synthesis import SynthesisProxy
from tts_proxy.tts.provider import BaseSpeechProvider, get_provider

_LOG = get_logger("tts-proxy.dependencies")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from TTS_PROXY_SETTINGS (default config/settings.yaml).
    A missing file is not an error: defaults plus environment overrides
    are used instead.
    """
    path = os.getenv("TTS_PROXY_SETTINGS", "config/settings.yaml")
    try:
        return load_settings(path)
    except FileNotFoundError:
        warn(_LOG, "settings_missing", path=path, using="defaults")
        return Settings(raw=apply_env_overrides({}))


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Validated configuration built from get_settings()."""
    return get_settings().get_app_config()


@lru_cache(maxsize=1)
def get_quota_store() -> QuotaStore:
    """The QuotaStore shared by all requests for the life of the process."""
    quota = get_app_config().quota
    return QuotaStore(
        limit=quota.daily_limit,
        window_seconds=quota.window_seconds,
        sweep_interval_seconds=quota.sweep_interval_seconds,
    )


def get_speech_provider() -> BaseSpeechProvider:
    """The configured speech provider (created on first use)."""
    return get_provider(get_app_config())


def get_admission_gate(
    store: QuotaStore = Depends(get_quota_store),
    config: AppConfig = Depends(get_app_config),
) -> AdmissionGate:
    return AdmissionGate(store, trust_proxy=config.quota.trust_proxy)


def get_synthesis_proxy(
    provider: BaseSpeechProvider = Depends(get_speech_provider),
    config: AppConfig = Depends(get_app_config),
) -> SynthesisProxy:
    return SynthesisProxy(provider, config.provider)


async def new_request_id() -> str:
    """
    Generate and bind a request ID for log correlation.

    Declared async so the ContextVar is set in the request's own context
    (sync dependencies run in a worker thread with a copied context).
    """
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)
    return rid


def admit(request: Request, gate: AdmissionGate = Depends(get_admission_gate)) -> QuotaDecision:
    """
    Admission dependency for the synthesis route.

    Raises:
        QuotaExceededError: If the caller's quota is used up.
    """
    return gate.admit(request)


def reset_dependencies() -> None:
    """Clear cached singletons so settings are re-read (used by tests and the CLI)."""
    get_settings.cache_clear()
    get_app_config.cache_clear()
    get_quota_store.cache_clear()
