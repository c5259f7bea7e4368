"""Pydantic schemas for admission control responses."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class RuleView(BaseModel):
    """Public view of a registered admission rule."""

    name: str = Field(..., description="Unique rule identifier.")
    scope_pattern: str = Field(
        ..., description="Path prefix the rule applies to (empty for the catch-all rule)."
    )
    window_ms: int = Field(..., description="Fixed window size in milliseconds.")
    max_requests: int = Field(..., description="Requests admitted per key per window.")
    rejection_message: str = Field(..., description="Message returned when throttled.")
    is_default: bool = Field(
        False, description="Whether this is the catch-all rule used when nothing matches."
    )


class RulesResponse(BaseModel):
    """Configured rules plus live counter statistics."""

    enabled: bool = Field(..., description="Whether admission control is active.")
    rules: List[RuleView] = Field(
        default_factory=list,
        description="Rules in registration order; the default rule is listed last.",
    )
    counters: int = Field(..., description="Number of live (rule, key) counters.")


class RejectionBody(BaseModel):
    """Body of the HTTP 429 response sent to throttled callers."""

    error: str = Field(..., description="Short error label.")
    message: str | None = Field(None, description="Rejection message of the matched rule.")
    retryAfter: int = Field(..., description="Seconds until the current window resets.")
