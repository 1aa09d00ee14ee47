"""
Quote Source Exceptions.

Raised by quote providers and always handled inside the quote
cache: a failed fetch means "no price", never an error for the
caller.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class QuoteSourceError(Exception):
    """Base exception for all quote provider errors."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source_name = source_name
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source_name": self.source_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.source_name:
            parts.append(f"[source={self.source_name}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class FetchError(QuoteSourceError):
    """HTTP or connection failure while calling a provider."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.status_code = status_code
        self.request_url = request_url


class RateLimitError(FetchError):
    """
    Provider refused the request for quota reasons.

    Covers HTTP 429 and Alpha Vantage "Note"/"Information"
    payloads. The cache reacts by trying the next API key.
    """

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            source_name,
            status_code=429,
            original_error=original_error,
            context=context,
        )


class NormalizationError(QuoteSourceError):
    """Payload did not contain a usable price."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        raw_data: Optional[Any] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, None, context)
        self.raw_data = raw_data


class ConfigurationError(QuoteSourceError):
    """Provider cannot run with the current configuration (e.g. no API key)."""
    pass
