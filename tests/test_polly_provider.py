"""Tests for the AWS Polly provider using botocore's Stubber."""
from __future__ import annotations

import io

import boto3
import pytest
from botocore.exceptions import ReadTimeoutError
from botocore.response import StreamingBody
from botocore.stub import Stubber

from tts_proxy.core.config import AppConfig, ProviderConfig
from tts_proxy.core.errors import ProviderError
from tts_proxy.tts.polly import PollyProvider
from tts_proxy.tts.provider import AudioStream, _create_provider

AUDIO = b"ID3" + b"\xff\xfb\x90\x64" * 3000


@pytest.fixture
def polly_client():
    return boto3.client(
        "polly",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def expected_params(text="Hello there", voice="Joanna"):
    return {"Text": text, "OutputFormat": "mp3", "VoiceId": voice, "Engine": "neural"}


def read_all(stream: AudioStream) -> bytes:
    out = b""
    with stream:
        while (chunk := stream.next_chunk()) is not None:
            out += chunk
    return out


class TestSynthesize:
    def test_streams_audio_body(self, polly_client):
        provider = PollyProvider(AppConfig(), client=polly_client)
        with Stubber(polly_client) as stubber:
            stubber.add_response(
                "synthesize_speech",
                {
                    "AudioStream": StreamingBody(io.BytesIO(AUDIO), len(AUDIO)),
                    "ContentType": "audio/mpeg",
                    "RequestCharacters": 11,
                },
                expected_params(),
            )
            stream = provider.synthesize("Hello there", "Joanna")
            stubber.assert_no_pending_responses()

        assert stream.content_type == "audio/mpeg"
        assert read_all(stream) == AUDIO
        assert stream.closed

    def test_reads_in_configured_chunk_size(self, polly_client):
        config = AppConfig(provider=ProviderConfig(chunk_size=1024))
        provider = PollyProvider(config, client=polly_client)
        with Stubber(polly_client) as stubber:
            stubber.add_response(
                "synthesize_speech",
                {"AudioStream": StreamingBody(io.BytesIO(AUDIO), len(AUDIO)), "ContentType": "audio/mpeg"},
                expected_params(),
            )
            stream = provider.synthesize("Hello there", "Joanna")

        first = stream.next_chunk()
        stream.close()
        assert len(first) == 1024

    def test_client_error_mapped(self, polly_client):
        provider = PollyProvider(AppConfig(), client=polly_client)
        with Stubber(polly_client) as stubber:
            stubber.add_client_error(
                "synthesize_speech",
                service_error_code="TextLengthExceededException",
                service_message="Maximum text length has been exceeded",
                http_status_code=400,
                expected_params=expected_params(),
            )
            with pytest.raises(ProviderError) as exc_info:
                provider.synthesize("Hello there", "Joanna")

        assert exc_info.value.message == "Maximum text length has been exceeded"
        assert exc_info.value.provider_code == "TextLengthExceededException"

    def test_invalid_voice_mapped(self, polly_client):
        provider = PollyProvider(AppConfig(), client=polly_client)
        with Stubber(polly_client) as stubber:
            stubber.add_client_error(
                "synthesize_speech",
                service_error_code="InvalidParameterValue",
                service_message="Voice Zed is not supported",
                http_status_code=400,
            )
            with pytest.raises(ProviderError) as exc_info:
                provider.synthesize("Hello there", "Zed")

        assert exc_info.value.provider_code == "InvalidParameterValue"


class _BrokenBody:
    """Body that times out after the first chunk."""

    def __init__(self):
        self.closed = False

    def iter_chunks(self, chunk_size=1024):
        yield b"\xff\xfb"
        raise ReadTimeoutError(endpoint_url="https://polly.us-east-1.amazonaws.com")

    def close(self):
        self.closed = True


class _FakeClient:
    def __init__(self, body):
        self.body = body

    def synthesize_speech(self, **kwargs):
        return {"AudioStream": self.body, "ContentType": "audio/mpeg"}


class TestStreamFailures:
    def test_read_timeout_becomes_provider_error(self):
        body = _BrokenBody()
        provider = PollyProvider(AppConfig(), client=_FakeClient(body))
        stream = provider.synthesize("Hello", "Joanna")

        assert stream.next_chunk() == b"\xff\xfb"
        with pytest.raises(ProviderError) as exc_info:
            stream.next_chunk()
        assert exc_info.value.provider_code == "ReadTimeoutError"

        stream.close()
        assert body.closed

    def test_close_before_reading_releases_body(self):
        body = _BrokenBody()
        provider = PollyProvider(AppConfig(), client=_FakeClient(body))
        stream = provider.synthesize("Hello", "Joanna")
        stream.close()
        stream.close()
        assert body.closed
        assert stream.next_chunk() is None


class TestFactory:
    def test_creates_polly(self):
        provider = _create_provider(AppConfig())
        assert isinstance(provider, PollyProvider)
        assert provider.name == "polly"

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            _create_provider(AppConfig(provider=ProviderConfig(name="nope")))
