"""Tests for the uvicorn entry point."""

from unittest.mock import Mock

import pytest

from admission import __main__ as entrypoint


def test_trusts_configured_proxies(monkeypatch: pytest.MonkeyPatch) -> None:
    run = Mock()
    monkeypatch.setattr(entrypoint.uvicorn, "run", run)
    monkeypatch.setattr(entrypoint.settings.app, "forwarded_allow_ips", "10.0.0.5,10.0.0.6")

    entrypoint.main()

    _, kwargs = run.call_args
    assert run.call_args.args == ("admission.main:app",)
    assert kwargs["proxy_headers"] is True
    assert kwargs["forwarded_allow_ips"] == "10.0.0.5,10.0.0.6"
    assert kwargs["workers"] == 1


def test_unset_proxies_defer_to_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    run = Mock()
    monkeypatch.setattr(entrypoint.uvicorn, "run", run)
    monkeypatch.setattr(entrypoint.settings.app, "forwarded_allow_ips", None)

    entrypoint.main()

    assert run.call_args.kwargs["forwarded_allow_ips"] is None
