"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from admission.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def capture():
    logger = logging.getLogger("test_admission_logging")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    yield logger, stream
    logger.handlers.clear()


def test_redacts_client_identifiers(capture):
    logger, stream = capture

    logger.warning(
        "admission.rejected",
        extra={
            "client_ip": "203.0.113.9",
            "user_id": "u-777",
            "rule": "payment",
        },
    )

    output = stream.getvalue()
    assert "203.0.113.9" not in output
    assert "u-777" not in output
    assert "[REDACTED]" in output
    assert "payment" in output


def test_safe_fields_pass_through(capture):
    logger, stream = capture

    logger.info(
        "admission.allowed",
        extra={"key_hash": "abcd1234", "path": "/api/v1/products", "remaining": 59},
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "admission.allowed"
    assert record["level"] == "info"
    assert record["key_hash"] == "abcd1234"
    assert record["remaining"] == 59
    assert "[REDACTED]" not in stream.getvalue()


def test_redacts_nested_headers(capture):
    logger, stream = capture

    logger.info(
        "request",
        extra={"headers": {"Authorization": "Bearer secret", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "Bearer secret" not in output
    assert "pytest" in output


def test_request_id_from_context(capture):
    logger, stream = capture

    set_request_id("req-42")
    try:
        logger.info("admission.sweep", extra={"removed": 3})
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-42"
