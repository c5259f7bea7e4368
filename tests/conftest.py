"""Pytest configuration and fixtures shared across all test modules.

This file is loaded by pytest before any test module, so environment
variables set here are visible when settings are first imported.
"""

import os

# Set before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("ADMISSION_ENABLED", "true")

import pytest

from admission.adapters.rate_limit.base import Rule
from admission.adapters.rate_limit.in_memory import InMemoryFixedWindowAdmissionController


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1_000_000.0)


@pytest.fixture
def deployment_rules() -> list[Rule]:
    """Rules mirroring the production storefront deployment."""
    message = "Too many requests from this IP, please try again later."
    return [
        Rule("auth-login", "/api/v1/auth/login", 15 * 60 * 1000, 5, message),
        Rule("auth-register", "/api/v1/auth/register", 15 * 60 * 1000, 5, message),
        Rule("payment", "/api/v1/payment/", 60 * 1000, 3, "Too many payment attempts."),
        Rule("api", "/api/v1/", 60 * 1000, 60, message),
    ]


@pytest.fixture
def default_rule() -> Rule:
    return Rule("default", "", 15 * 60 * 1000, 100, "Too many requests, please try again later.")


@pytest.fixture
def controller(
    deployment_rules: list[Rule], default_rule: Rule, clock: FakeClock
) -> InMemoryFixedWindowAdmissionController:
    return InMemoryFixedWindowAdmissionController(
        rules=deployment_rules,
        default_rule=default_rule,
        clock=clock,
    )
