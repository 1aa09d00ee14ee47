"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exceptions surfaced by the trade accounting engine
to its callers.

- Clear hierarchy for callers that map errors to responses
- Field-level detail for validation failures
- Context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
DiaryException (base)
├── ValidationError        invalid/missing input, nothing mutated
├── NotFoundError          unknown trade/portfolio, no open lots
└── UpstreamUnavailableError  no live quote (never fails the caller)

Partial FIFO closes are NOT errors: they are reported through
the `leftover` field of the closure result.

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# BASE EXCEPTION
# ============================================================

class DiaryException(Exception):
    """
    Base exception for all trade diary errors.

    All exceptions carry:
    - message: human readable reason
    - context: structured details for the caller
    - timestamp: when the error occurred
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/responses."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================================
# INPUT ERRORS
# ============================================================

class ValidationError(DiaryException):
    """
    A required field is missing or invalid.

    Raised before any mutation takes place.
    """

    def __init__(
        self,
        field: str,
        reason: str,
        value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        context["field"] = field
        context["reason"] = reason
        if value is not None:
            context["value"] = str(value)[:100]

        super().__init__(f"Invalid {field}: {reason}", context=context, **kwargs)
        self.field = field
        self.reason = reason


class NotFoundError(DiaryException):
    """A referenced record does not exist (or is not visible to the user)."""

    def __init__(
        self,
        entity: str,
        identifier: Any,
        message: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        context["entity"] = entity
        context["identifier"] = str(identifier)

        super().__init__(
            message or f"{entity} not found: {identifier}",
            context=context,
            **kwargs,
        )
        self.entity = entity
        self.identifier = identifier


# ============================================================
# UPSTREAM ERRORS
# ============================================================

class UpstreamUnavailableError(DiaryException):
    """
    No live price could be obtained for a ticker.

    Callers degrade to "no live price"; this never fails the
    primary operation.
    """

    def __init__(self, ticker: str, attempted_sources: Optional[list] = None, **kwargs):
        context = kwargs.pop("context", {})
        context["ticker"] = ticker
        context["attempted_sources"] = attempted_sources or []

        super().__init__(f"No quote available for {ticker}", context=context, **kwargs)
        self.ticker = ticker
        self.attempted_sources = attempted_sources or []


__all__ = [
    "DiaryException",
    "ValidationError",
    "NotFoundError",
    "UpstreamUnavailableError",
]
