"""Tests for admission settings loading and validation."""

import json

import pytest
from pydantic import ValidationError

from admission.core.config import AdmissionSettings, RuleSettings
from admission.core.rate_limit import build_admission_controller


def test_default_rules_mirror_deployment() -> None:
    cfg = AdmissionSettings()

    assert [(r.name, r.scope_pattern, r.window_ms, r.max_requests) for r in cfg.rules] == [
        ("auth-login", "/api/v1/auth/login", 900_000, 5),
        ("auth-register", "/api/v1/auth/register", 900_000, 5),
        ("payment", "/api/v1/payment/", 60_000, 3),
        ("api", "/api/v1/", 60_000, 60),
    ]
    assert cfg.default_rule.window_ms == 900_000
    assert cfg.default_rule.max_requests == 100


@pytest.mark.parametrize(
    "overrides",
    [
        {"window_ms": 0},
        {"window_ms": -100},
        {"max_requests": 0},
        {"name": ""},
    ],
)
def test_rule_settings_reject_invalid_values(overrides: dict) -> None:
    values = {"name": "r", "window_ms": 1000, "max_requests": 1, **overrides}

    with pytest.raises(ValidationError):
        RuleSettings(**values)


def test_rules_loaded_from_json_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "ADMISSION_RULES",
        json.dumps(
            [
                {"name": "search", "scope_pattern": "/api/v1/search", "window_ms": 1000, "max_requests": 2},
            ]
        ),
    )
    monkeypatch.setenv(
        "ADMISSION_DEFAULT_RULE",
        json.dumps({"name": "fallback", "window_ms": 5000, "max_requests": 50}),
    )

    cfg = AdmissionSettings()
    controller = build_admission_controller(cfg)

    assert [r.name for r in controller.rules] == ["search", "fallback"]
    assert controller.match("/api/v1/search?q=shoes").name == "search"
    assert controller.match("/api/v1/orders").name == "fallback"


def test_scalar_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ADMISSION_ENABLED", "false")
    monkeypatch.setenv("ADMISSION_SHARD_COUNT", "8")
    monkeypatch.setenv("ADMISSION_USER_ID_HEADER", "X-User-ID")

    cfg = AdmissionSettings()

    assert cfg.enabled is False
    assert cfg.shard_count == 8
    assert cfg.user_id_header == "X-User-ID"


def test_built_controller_uses_default_message() -> None:
    controller = build_admission_controller(AdmissionSettings())

    for _ in range(3):
        controller.admit("k", "/api/v1/payment/charge", timestamp=0)
    blocked = controller.admit("k", "/api/v1/payment/charge", timestamp=0)

    assert blocked.message == "Too many requests from this IP, please try again later."
