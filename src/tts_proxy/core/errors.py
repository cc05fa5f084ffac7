"""
Error Codes and Exceptions.

Every failure the service reports to a caller is a ProxyError subclass.
Each carries the HTTP status it maps to, so route handlers can convert
any of them into a JSON response the same way.

Error Body:
    {"error": "<human readable message>", "details": "<optional>"}

Hierarchy:
    ProxyError
    ├── ValidationError     400  Client sent unusable input
    ├── QuotaExceededError  429  Daily quota exhausted
    └── ProviderError       500  Speech provider call failed
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """
    Standardized error codes.

    Codes are logged alongside each failure and used by tests to tell
    errors apart without matching on message text.
    """
    INVALID_INPUT = "INVALID_INPUT"         # Bad request data
    TEXT_REQUIRED = "TEXT_REQUIRED"         # Missing or blank text
    TEXT_TOO_LONG = "TEXT_TOO_LONG"         # Text over the character limit
    VOICE_INVALID = "VOICE_INVALID"         # Malformed voice identifier
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"       # Daily quota used up
    PROVIDER_FAILED = "PROVIDER_FAILED"     # Speech provider error
    INTERNAL_ERROR = "INTERNAL_ERROR"       # Unexpected error


class ProxyError(Exception):
    """
    Base exception for errors reported to API callers.

    Attributes:
        message: Human-readable error message (the "error" field).
        code: Error code from ErrorCode class.
        status_code: HTTP status code for the response.
        details: Optional extra context (the "details" field).
    """
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body returned by the API."""
        result: Dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ProxyError):
    """Raised when a synthesis request fails input validation."""
    status_code = 400

    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Any] = None):
        super().__init__(message, code, details)


class QuotaExceededError(ProxyError):
    """
    Raised by the admission gate when a client has used its quota.

    Attributes:
        decision: The QuotaDecision that rejected the request, used to
            build the RateLimit-* headers on the 429 response.
    """
    status_code = 429

    def __init__(self, message: str, decision: Any = None):
        super().__init__(message, ErrorCode.QUOTA_EXCEEDED)
        self.decision = decision


class ProviderError(ProxyError):
    """
    Raised when the speech provider call fails.

    The message is the provider's own diagnostic; routes report it as
    "details" under a generic "Failed to synthesize speech" error.
    """
    status_code = 500

    def __init__(self, message: str, provider_code: Optional[str] = None):
        super().__init__(message, ErrorCode.PROVIDER_FAILED)
        self.provider_code = provider_code
