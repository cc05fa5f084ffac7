"""
AWS Polly Speech Provider.

Calls Polly's SynthesizeSpeech with MP3 output and the neural engine and
hands back the HTTP response body as an AudioStream, so audio is read
from AWS only as fast as it is forwarded to the caller.

Client Configuration:
    - region_name from provider.region (AWS_REGION env overrides it)
    - connect/read timeouts from provider.connect_timeout_s/read_timeout_s
    - retries pinned to a single attempt; a failed call is reported once
    - credentials from the standard boto3 chain (env vars, profile, role)

Error Mapping:
    botocore ClientError (invalid voice, access denied, throttling, text
    too long for Polly) and BotoCoreError (no credentials, connection and
    read timeouts, broken stream) are raised as ProviderError with the
    provider's message.
"""
from __future__ import annotations

from typing import Any, Iterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tts_proxy.core.config import AppConfig
from tts_proxy.core.errors import ProviderError
from tts_proxy.core.logging import debug, error
from tts_proxy.tts.provider import AudioStream, BaseSpeechProvider


def _provider_error(exc: Exception) -> ProviderError:
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        return ProviderError(err.get("Message") or str(exc), provider_code=err.get("Code"))
    return ProviderError(str(exc), provider_code=type(exc).__name__)


class PollyProvider(BaseSpeechProvider):
    """
    Speech provider backed by AWS Polly.

    Example:
        provider = PollyProvider(config)
        with provider.synthesize("Hello there", "Joanna") as stream:
            first = stream.next_chunk()
    """
    name = "polly"

    def __init__(self, config: AppConfig, client: Optional[Any] = None):
        """
        Args:
            config: Validated application configuration.
            client: Pre-built Polly client (tests pass a stubbed one).
        """
        super().__init__(config)
        pc = config.provider
        self._client = client or boto3.client(
            "polly",
            region_name=pc.region,
            config=Config(
                connect_timeout=pc.connect_timeout_s,
                read_timeout=pc.read_timeout_s,
                retries={"total_max_attempts": 1},
            ),
        )

    def synthesize(self, text: str, voice: str) -> AudioStream:
        pc = self.config.provider
        debug(self.logger, "polly_request", chars=len(text), voice=voice, engine=pc.engine)
        try:
            response = self._client.synthesize_speech(
                Text=text,
                OutputFormat=pc.output_format,
                VoiceId=voice,
                Engine=pc.engine,
            )
        except (ClientError, BotoCoreError) as e:
            err = _provider_error(e)
            error(self.logger, "polly_request_failed", voice=voice, code=err.provider_code, error=err.message)
            raise err from e

        body = response["AudioStream"]
        return AudioStream(
            chunks=self._iter_body(body, pc.chunk_size),
            close=body.close,
            content_type=response.get("ContentType", "audio/mpeg"),
        )

    def _iter_body(self, body: Any, chunk_size: int) -> Iterator[bytes]:
        try:
            for chunk in body.iter_chunks(chunk_size=chunk_size):
                yield chunk
        except (ClientError, BotoCoreError) as e:
            raise _provider_error(e) from e
