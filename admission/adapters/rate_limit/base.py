"""Admission controller interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the counter store can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Rule:
    """Static admission rule, registered at startup and never mutated.

    Attributes:
        name: Unique rule identifier (used to namespace counters).
        scope_pattern: Path prefix the rule applies to ("" matches every path).
        window_ms: Fixed window size in milliseconds.
        max_requests: Requests admitted per key within one window.
        rejection_message: Message returned to throttled callers.
    """

    name: str
    scope_pattern: str
    window_ms: int
    max_requests: int
    rejection_message: str


@dataclass(frozen=True)
class Decision:
    """Outcome of a single admission check.

    Attributes:
        allowed: Whether the request may proceed.
        rule: Name of the rule that was applied.
        limit: Max requests per window for that rule.
        remaining: Requests left in the current window (0 when rejected).
        reset_at_ms: Clock reading (ms) at which the current window expires.
        reset_after_seconds: Whole seconds until the current window expires.
        retry_after_seconds: Suggested wait in whole seconds when rejected.
        message: Rule rejection message when rejected.
    """

    allowed: bool
    rule: str
    limit: int
    remaining: int
    reset_at_ms: float
    reset_after_seconds: int
    retry_after_seconds: int | None = None
    message: str | None = None


class AbstractAdmissionController(ABC):
    """Interface for admission controllers."""

    @abstractmethod
    def admit(self, key: str, path: str, timestamp: float | None = None) -> Decision:
        """Record an attempt for ``key`` on ``path`` and decide whether it may proceed.

        Args:
            key: Non-empty caller identifier (e.g., client IP).
            path: Request path used to select the matching rule.
            timestamp: Monotonic clock reading in milliseconds; read from the
                controller's clock when omitted.

        Returns:
            Decision describing whether the attempt was admitted.
        """
        raise NotImplementedError

    def on_response(self, key: str, path: str) -> None:
        """Feedback hook called after an admitted request completes."""
        return None

    @abstractmethod
    def sweep(self, timestamp: float | None = None) -> int:
        """Drop stale counters and return how many were removed."""
        raise NotImplementedError

    @property
    @abstractmethod
    def rules(self) -> list[Rule]:
        """Registered rules in registration order, default rule last."""
        raise NotImplementedError

    @abstractmethod
    def counter_count(self) -> int:
        raise NotImplementedError
