"""Application-level exception types.

The admission core only fails on bad configuration, which surfaces while the
app is being built. ``AppError`` still carries the HTTP status used by the
global handler in case one escapes into a request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured context attached to configuration errors."""

    rule: str
    actual_value: int | float


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    http_status: ClassVar[int] = 500

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationAppError(AppError):
    """Raised when admission rules or tuning values are invalid."""
