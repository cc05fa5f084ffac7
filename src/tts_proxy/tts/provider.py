"""
Speech Provider Base Class and Factory.

This module provides:
    - AudioStream: A live, single-use stream of audio bytes
    - BaseSpeechProvider: Abstract base class for the external speech service
    - get_provider(): Factory function to create/get the provider instance

Provider Contract:
    synthesize(text, voice) returns an AudioStream or raises ProviderError.
    The stream is pulled chunk by chunk with next_chunk() and must be
    closed by whoever consumes it (AudioStream is a context manager).
    Errors while reading the stream are also raised as ProviderError.

Implementing a Provider:
    1. Create tts/<name>.py
    2. Inherit from BaseSpeechProvider
    3. Implement synthesize()
    4. Register in _create_provider()
"""
from __future__ import annotations

import threading
from typing import Callable, Iterator, Optional

from tts_proxy.core.config import AppConfig
from tts_proxy.core.logging import get_logger


class AudioStream:
    """
    A provider audio stream, consumed once.

    Wraps a chunk iterator plus the callable that releases the underlying
    connection. close() is idempotent and also closes the iterator, so a
    generator-based iterator runs its own cleanup.

    Attributes:
        content_type: MIME type reported by the provider.

    Example:
        with provider.synthesize("Hello", "Joanna") as stream:
            while (chunk := stream.next_chunk()) is not None:
                out.write(chunk)
    """

    def __init__(
        self,
        chunks: Iterator[bytes],
        close: Optional[Callable[[], None]] = None,
        content_type: str = "audio/mpeg",
    ):
        self._chunks = chunks
        self._close = close
        self.content_type = content_type
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def next_chunk(self) -> Optional[bytes]:
        """
        Pull the next non-empty chunk.

        Returns:
            Chunk bytes, or None once the stream is exhausted or closed.

        Raises:
            ProviderError: If the provider fails while streaming.
        """
        if self._closed:
            return None
        for chunk in self._chunks:
            if chunk:
                return chunk
        return None

    def close(self) -> None:
        """Release the provider connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        close_iter = getattr(self._chunks, "close", None)
        if close_iter is not None:
            close_iter()
        if self._close is not None:
            self._close()

    def __enter__(self) -> "AudioStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BaseSpeechProvider:
    """
    Abstract base class for speech providers.

    Attributes:
        name: Provider identifier (e.g., "polly").
        config: Validated application configuration.
        logger: Logger instance for this provider.
    """
    name: str = "base"

    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = get_logger(f"tts-proxy.provider.{self.name}")

    def synthesize(self, text: str, voice: str) -> AudioStream:
        """
        Start synthesis and return the audio stream.

        This is a blocking call; async callers run it in a threadpool.

        Args:
            text: Text to speak.
            voice: Provider voice identifier.

        Returns:
            AudioStream positioned at the first byte.

        Raises:
            ProviderError: If the provider rejects or fails the request.
            NotImplementedError: If not overridden.
        """
        raise NotImplementedError


# =============================================================================
# Provider Factory (Singleton Pattern)
# =============================================================================

_PROVIDER: Optional[BaseSpeechProvider] = None
_PROVIDER_LOCK = threading.Lock()


def _create_provider(config: AppConfig) -> BaseSpeechProvider:
    """
    Create a provider instance from configuration.

    Raises:
        ValueError: If the provider name is unknown.
    """
    if config.provider.name == "polly":
        from tts_proxy.tts.polly import PollyProvider
        return PollyProvider(config)

    raise ValueError(f"Unknown speech provider: {config.provider.name}")


def get_provider(config: AppConfig) -> BaseSpeechProvider:
    """
    Get or create the global provider instance.

    The boto3 client inside is thread-safe and holds a connection pool,
    so one instance serves all requests.
    """
    global _PROVIDER

    if _PROVIDER is None:
        with _PROVIDER_LOCK:
            if _PROVIDER is None:
                _PROVIDER = _create_provider(config)
    return _PROVIDER
