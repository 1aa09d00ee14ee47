"""
Core Module Package.

This package contains the core infrastructure components
that all other modules depend on.

Components:
- clock: Unified time abstraction
- exceptions: Custom exception hierarchy
- money: Decimal rounding helpers
- log_config: Process logging setup
"""

from core.clock import ClockProtocol, MockClock, SystemClock
from core.exceptions import (
    DiaryException,
    NotFoundError,
    UpstreamUnavailableError,
    ValidationError,
)
from core.log_config import setup_logging


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "DiaryException",
    "ValidationError",
    "NotFoundError",
    "UpstreamUnavailableError",
    "setup_logging",
]
