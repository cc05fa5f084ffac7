"""Shared fixtures: fake provider, manual clock, and a wired test app."""
from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

import pytest

from tts_proxy.core.config import AppConfig
from tts_proxy.services.quota_store import QuotaStore
from tts_proxy.tts.provider import AudioStream, BaseSpeechProvider

MP3_CHUNKS = [b"ID3\x04\x00\x00", b"\xff\xfb\x90\x64" * 64, b"\xff\xfb\x90\x44" * 64]


class ManualClock:
    """Clock callable that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(BaseSpeechProvider):
    """
    In-memory provider.

    Records every synthesize() call and every stream it hands out. Set
    `fail` to make the call itself raise, or pass a custom chunk factory to
    fail while streaming.
    """
    name = "fake"

    def __init__(
        self,
        chunks: Iterable[bytes] = MP3_CHUNKS,
        fail: Optional[BaseException] = None,
        chunk_factory=None,
    ):
        super().__init__(AppConfig())
        self.chunks = list(chunks)
        self.fail = fail
        self.chunk_factory = chunk_factory
        self.calls: List[tuple] = []
        self.streams: List[AudioStream] = []

    def synthesize(self, text: str, voice: str) -> AudioStream:
        self.calls.append((text, voice))
        if self.fail is not None:
            raise self.fail
        chunks: Iterator[bytes] = self.chunk_factory() if self.chunk_factory else iter(self.chunks)
        stream = AudioStream(chunks)
        self.streams.append(stream)
        return stream


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock) -> QuotaStore:
    return QuotaStore(limit=12, window_seconds=86400, clock=clock, sweep_interval_seconds=0)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def app(store, provider):
    """Application with the quota store and provider swapped for test doubles."""
    from tts_proxy.api.dependencies import get_quota_store, get_speech_provider
    from tts_proxy.main import create_app

    app = create_app()
    app.dependency_overrides[get_quota_store] = lambda: store
    app.dependency_overrides[get_speech_provider] = lambda: provider
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c
