"""
SynthesisProxy - Validate, Call Provider, Stream.

This module turns a synthesis request into a stream of audio chunks
forwarded to the caller as they arrive from the provider.

Architecture:
    Request → Validate → Provider call → First chunk → Response committed → Pump

Commit Point:
    Once the first byte is written the HTTP status (200) cannot change.
    open() therefore does everything that can fail cheaply before that
    point: validation, the provider call, and reading the first chunk. Any
    failure there is raised as a ProxyError and becomes a JSON error
    response. Failures after the commit point end the connection early.

Streaming:
    pump() is an async generator. Blocking reads from the provider run in
    the threadpool so the event loop keeps serving other requests. Between
    chunks it checks whether the client went away and whether the total
    stream deadline has passed; either stops further reads. The provider
    stream is closed in a finally block once pump() has started. The route
    also attaches close() as the response background task, which covers a
    client that disconnects before the body is first read.

Example:
    proxy = SynthesisProxy(provider, config.provider)
    req = proxy.prepare(body.text, body.voice)
    opened = await proxy.open(req)
    return StreamingResponse(proxy.pump(opened, request.is_disconnected), media_type="audio/mpeg")
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi.concurrency import run_in_threadpool

from tts_proxy.core.config import ProviderConfig
from tts_proxy.core.errors import ProviderError
from tts_proxy.core.logging import error, get_logger, info, verbose, warn
from tts_proxy.core.metrics import metrics
from tts_proxy.services.validators import validate_text, validate_voice
from tts_proxy.tts.provider import AudioStream, BaseSpeechProvider
from tts_proxy.utils.timeit import timeit

_LOG = get_logger("tts-proxy.synthesis")

DisconnectCheck = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class SynthesisRequest:
    """
    A validated synthesis request.

    Attributes:
        text: Text to speak, exactly as the caller sent it.
        voice: Provider voice identifier.
    """
    text: str
    voice: str


@dataclass
class OpenedStream:
    """
    A provider stream whose first chunk has already been read.

    Attributes:
        stream: The provider stream, still open.
        first_chunk: First audio bytes, or None if the audio is empty.
        content_type: MIME type to declare on the response.
    """
    stream: AudioStream
    first_chunk: Optional[bytes]
    content_type: str


class SynthesisProxy:
    """
    Streams provider audio to callers.

    Attributes:
        provider: The external speech provider.
        config: Provider section of the application config.
    """

    def __init__(self, provider: BaseSpeechProvider, config: ProviderConfig):
        self.provider = provider
        self.config = config

    def prepare(self, text: Optional[str], voice: Optional[str]) -> SynthesisRequest:
        """
        Validate raw request fields.

        Raises:
            ValidationError: Missing/blank text, text over the limit, or a
                malformed voice.
        """
        text = validate_text(text, max_length=self.config.max_text_chars)
        voice = validate_voice(voice, default=self.config.default_voice)
        return SynthesisRequest(text=text, voice=voice)

    def _open_blocking(self, req: SynthesisRequest) -> tuple[AudioStream, Optional[bytes]]:
        stream = self.provider.synthesize(req.text, req.voice)
        try:
            first = stream.next_chunk()
        except BaseException:
            stream.close()
            raise
        return stream, first

    async def open(self, req: SynthesisRequest) -> OpenedStream:
        """
        Call the provider and read the first chunk.

        The call and the first read run as one threadpool job, so no
        await separates a freshly opened stream from the code that owns it.

        Raises:
            ProviderError: If the provider call or the first read fails.
                The stream, if any, is closed before raising.
        """
        with timeit("provider_first_chunk") as t:
            stream, first = await run_in_threadpool(self._open_blocking, req)

        metrics.observe_provider_latency(t.timing.seconds)
        verbose(_LOG, "provider_first_chunk", seconds=t.timing.seconds,
                bytes=len(first) if first else 0)
        return OpenedStream(stream=stream, first_chunk=first, content_type=stream.content_type)

    async def pump(
        self,
        opened: OpenedStream,
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> AsyncIterator[bytes]:
        """
        Yield audio chunks until the provider stream ends.

        Args:
            opened: Result of open().
            is_disconnected: Async callable reporting client disconnect
                (Request.is_disconnected in the route).

        Raises:
            ProviderError: If the provider fails mid-stream. The response
                is already committed, so this terminates the connection.
        """
        stream = opened.stream
        deadline = time.monotonic() + self.config.stream_timeout_s
        sent = 0
        chunks = 0
        outcome = "completed"

        metrics.stream_started()
        try:
            chunk = opened.first_chunk
            while chunk:
                yield chunk
                sent += len(chunk)
                chunks += 1

                if is_disconnected is not None and await is_disconnected():
                    outcome = "client_disconnected"
                    info(_LOG, "client_disconnected", bytes=sent, chunks=chunks)
                    break
                if time.monotonic() > deadline:
                    outcome = "timed_out"
                    warn(_LOG, "stream_timeout", bytes=sent, timeout_s=self.config.stream_timeout_s)
                    break

                chunk = await run_in_threadpool(stream.next_chunk)
        except ProviderError as e:
            outcome = "provider_failed"
            error(_LOG, "provider_stream_failed", bytes=sent, code=e.provider_code, error=e.message)
            raise
        finally:
            stream.close()
            metrics.stream_finished()
            metrics.add_audio_bytes(sent)
            verbose(_LOG, "stream_closed", outcome=outcome, bytes=sent, chunks=chunks)
