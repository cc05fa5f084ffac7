"""
Input Validation for Synthesis Requests.

Validation happens before the speech provider is called so that bad
input never costs a provider round-trip.

Validation Rules (first failing check wins):
    1. Text: required and not blank after trimming
    2. Text: at most 3000 characters, counted on the raw input
    3. Voice: optional; defaults to the configured voice; when given it
       must be a plain alphabetic identifier such as "Joanna"

A well-formed but unknown voice is passed through; the provider rejects
it and that surfaces as a provider error.

Usage:
    from tts_proxy.services.validators import validate_text, validate_voice

    try:
        text = validate_text(body.text)
        voice = validate_voice(body.voice, default="Joanna")
    except ValidationError as e:
        return JSONResponse(status_code=400, content=e.to_dict())
"""
from __future__ import annotations

import re
from typing import Optional

from tts_proxy.core.config import Defaults
from tts_proxy.core.errors import ErrorCode, ValidationError

TEXT_REQUIRED_MESSAGE = "Text is required"
VOICE_INVALID_MESSAGE = "Invalid voice"

# Polly voice IDs are single capitalised words ("Joanna", "Matthew", "Arlet")
_VOICE_RE = re.compile(r"^[A-Za-z]{1,32}$")


def text_too_long_message(max_length: int) -> str:
    return f"Text too long. Maximum {max_length} characters."


def validate_text(text: Optional[str], max_length: int = Defaults.TEXT_MAX_CHARS) -> str:
    """
    Validate text input.

    The text is returned unchanged: surrounding whitespace is only ignored
    for the emptiness check, and the length limit applies to the raw input.

    Args:
        text: Input text (None when the field was omitted).
        max_length: Maximum allowed length in characters.

    Returns:
        The original text.

    Raises:
        ValidationError: If the text is missing, blank or too long.
    """
    if not text or not text.strip():
        raise ValidationError(TEXT_REQUIRED_MESSAGE, ErrorCode.TEXT_REQUIRED)

    if len(text) > max_length:
        raise ValidationError(text_too_long_message(max_length), ErrorCode.TEXT_TOO_LONG)

    return text


def validate_voice(voice: Optional[str], default: str = Defaults.PROVIDER_DEFAULT_VOICE) -> str:
    """
    Resolve and validate the voice identifier.

    Only the shape is checked here. A malformed identifier such as
    "not a voice!" is rejected locally with 400 "Invalid voice" instead of
    being forwarded to the provider, where it would come back as a 500
    provider error. Well-formed but unknown voices still go to the provider.

    Args:
        voice: Requested voice, None or empty for the default.
        default: Voice used when none was requested.

    Returns:
        The voice to send to the provider.

    Raises:
        ValidationError: If the voice is not a plain alphabetic identifier.
    """
    if voice is None or voice == "":
        return default

    if not _VOICE_RE.match(voice):
        raise ValidationError(VOICE_INVALID_MESSAGE, ErrorCode.VOICE_INVALID)

    return voice
