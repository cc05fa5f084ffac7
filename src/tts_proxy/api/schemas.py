"""
API Request/Response Schemas.

Pydantic models for the HTTP surface. The speech request model is
deliberately permissive (every field optional) so that missing or blank
text reaches the validators and is reported with the service's own
"Text is required" message rather than a generic schema error.

Example Request:
    {
        "text": "Hello from the proxy.",
        "voice": "Joanna"
    }
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

# Voices offered by the web client; any Polly neural voice ID is accepted
SUPPORTED_VOICES = {
    "Joanna": "Joanna (Female, US)",
    "Matthew": "Matthew (Male, US)",
    "Emma": "Emma (Female, UK)",
    "Brian": "Brian (Male, UK)",
    "Amy": "Amy (Female, UK)",
}


class SpeechRequest(BaseModel):
    """
    Body of POST /api/speech.

    Attributes:
        text: Text to synthesize, 1-3000 characters (checked by validators).
        voice: Polly voice ID; defaults to the configured voice ("Joanna").
    """
    text: Optional[str] = Field(
        default=None,
        description="Text to synthesize (1-3000 characters)",
    )
    voice: Optional[str] = Field(
        default=None,
        description="Voice ID, e.g. " + ", ".join(SUPPORTED_VOICES),
    )


class HealthResponse(BaseModel):
    """Body of GET /health."""
    status: str
    message: str


class RateLimitStatus(BaseModel):
    """
    Body of GET /api/rate-limit-status.

    Attributes:
        limit: Requests allowed per window.
        remaining: Requests left for the caller in the current window.
        reset_seconds: Seconds until the caller's window ends.
    """
    limit: int
    remaining: int
    reset_seconds: int


class ErrorResponse(BaseModel):
    """JSON error body shared by all routes."""
    error: str
    details: Optional[Any] = None
