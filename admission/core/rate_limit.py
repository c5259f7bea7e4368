"""Admission control wiring for the HTTP layer.

This module turns configuration into a controller instance and plugs the
controller into FastAPI as an HTTP middleware.

Design goals:
- Minimal coupling: the middleware only talks to AbstractAdmissionController.
- Explicit state: the controller lives on ``app.state``, built by the app
  factory, never as a module-level singleton.
- The controller returns decisions; logging and the 429 response live here.

Key strategy:
- Client IP, optionally combined with a user id header.
- Unidentifiable clients share the ``unknown`` placeholder key.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from admission.adapters.rate_limit.base import AbstractAdmissionController, Decision, Rule
from admission.adapters.rate_limit.in_memory import InMemoryFixedWindowAdmissionController
from admission.core.config import AdmissionSettings, RuleSettings

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_KEY = "unknown"


def _to_rule(rule_settings: RuleSettings) -> Rule:
    return Rule(
        name=rule_settings.name,
        scope_pattern=rule_settings.scope_pattern,
        window_ms=rule_settings.window_ms,
        max_requests=rule_settings.max_requests,
        rejection_message=rule_settings.rejection_message,
    )


def build_admission_controller(admission_settings: AdmissionSettings) -> InMemoryFixedWindowAdmissionController:
    """Construct the in-memory controller described by ``admission_settings``.

    Raises:
        ConfigurationAppError: If the configured rules are invalid.
    """

    return InMemoryFixedWindowAdmissionController(
        rules=[_to_rule(r) for r in admission_settings.rules],
        default_rule=_to_rule(admission_settings.default_rule),
        shard_count=admission_settings.shard_count,
        sweep_age_factor=admission_settings.sweep_age_factor,
    )


def parse_exempt_paths(paths: str | None) -> frozenset[str]:
    """Parse a comma-separated path list into a set of trimmed, non-empty paths."""

    if not paths:
        return frozenset()
    return frozenset(p.strip() for p in paths.split(",") if p.strip())


def build_admission_key(request: Request, user_id_header: str | None = None) -> str:
    """Build the admission key for the current request.

    Args:
        request: FastAPI request.
        user_id_header: Optional header name whose value is appended to the IP.

    Returns:
        str: Non-empty caller key.
    """

    client_host = request.client.host if request.client and request.client.host else UNKNOWN_CLIENT_KEY
    if user_id_header:
        user_id = request.headers.get(user_id_header)
        if user_id:
            return f"{client_host}:{user_id}"
    return client_host


def _hash_key(key: str) -> str:
    """Hash the admission key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def rate_limit_headers(decision: Decision) -> dict[str, str]:
    return {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(decision.reset_after_seconds),
    }


def build_rejection_response(decision: Decision, *, include_headers: bool = True) -> JSONResponse:
    """Translate a rejected decision into the HTTP 429 response."""

    retry_after = decision.retry_after_seconds or 0
    headers = {"Retry-After": str(retry_after)}
    if include_headers:
        headers.update(rate_limit_headers(decision))

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Rate limit exceeded",
            "message": decision.message,
            "retryAfter": retry_after,
        },
        headers=headers,
    )


async def admission_middleware(request: Request, call_next) -> Response:
    """HTTP middleware admitting or throttling every non-exempt request.

    Reads the controller and its settings from ``request.app.state`` (set up
    by ``create_app``). Rejected requests never reach a route handler.
    """

    admission_settings: AdmissionSettings = request.app.state.admission_settings
    path = request.url.path

    if not admission_settings.enabled or path in request.app.state.exempt_paths:
        return await call_next(request)

    controller: AbstractAdmissionController = request.app.state.admission
    key = build_admission_key(request, admission_settings.user_id_header)
    decision = controller.admit(key, path)

    if not decision.allowed:
        logger.warning(
            "admission.rejected",
            extra={
                "key_hash": _hash_key(key),
                "path": path,
                "rule": decision.rule,
                "limit": decision.limit,
                "retry_after_s": decision.retry_after_seconds,
                "user_agent": request.headers.get("user-agent"),
            },
        )
        return build_rejection_response(decision, include_headers=admission_settings.include_headers)

    logger.debug(
        "admission.allowed",
        extra={
            "key_hash": _hash_key(key),
            "path": path,
            "rule": decision.rule,
            "remaining": decision.remaining,
        },
    )

    response: Response = await call_next(request)
    controller.on_response(key, path)

    if admission_settings.include_headers:
        for name, value in rate_limit_headers(decision).items():
            response.headers.setdefault(name, value)
    return response
