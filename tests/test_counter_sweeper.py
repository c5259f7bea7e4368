"""Tests for the background counter sweeper."""

import threading
from unittest.mock import Mock

import pytest

from admission.adapters.rate_limit.sweeper import CounterSweeper


def test_run_once_delegates_to_controller() -> None:
    controller = Mock()
    controller.sweep.return_value = 7
    sweeper = CounterSweeper(controller, interval_seconds=60)

    assert sweeper.run_once() == 7
    controller.sweep.assert_called_once_with()


def test_background_thread_sweeps_until_stopped() -> None:
    swept = threading.Event()
    controller = Mock()
    controller.sweep.side_effect = lambda: swept.set() or 0
    sweeper = CounterSweeper(controller, interval_seconds=0.01)

    sweeper.start()
    try:
        assert swept.wait(timeout=2.0)
        assert sweeper.running is True
    finally:
        sweeper.stop()

    assert sweeper.running is False


def test_sweep_failure_does_not_kill_thread() -> None:
    calls = []
    recovered = threading.Event()

    def flaky_sweep() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        recovered.set()
        return 0

    controller = Mock()
    controller.sweep.side_effect = flaky_sweep
    sweeper = CounterSweeper(controller, interval_seconds=0.01)

    sweeper.start()
    try:
        assert recovered.wait(timeout=2.0)
    finally:
        sweeper.stop()


def test_start_and_stop_are_idempotent() -> None:
    sweeper = CounterSweeper(Mock(), interval_seconds=60)

    sweeper.stop()
    sweeper.start()
    sweeper.start()
    assert sweeper.running is True

    sweeper.stop()
    sweeper.stop()
    assert sweeper.running is False


def test_real_controller_counters_are_swept(controller, clock) -> None:
    controller.admit("k", "/api/v1/payment/charge")
    clock.advance(120_000)

    assert CounterSweeper(controller).run_once() == 1
    assert controller.counter_count() == 0


def test_invalid_interval_rejected() -> None:
    with pytest.raises(ValueError):
        CounterSweeper(Mock(), interval_seconds=0)


def _live_sweeper_threads() -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name == "admission-sweeper" and t.is_alive()]


def test_restart_after_stop_timeout_never_overlaps_threads() -> None:
    entered = threading.Event()
    gate = threading.Event()

    def slow_sweep() -> int:
        entered.set()
        gate.wait(timeout=5.0)
        return 0

    controller = Mock()
    controller.sweep.side_effect = slow_sweep
    sweeper = CounterSweeper(controller, interval_seconds=0.01)

    sweeper.start()
    try:
        assert entered.wait(timeout=2.0)
        sweeper.stop(timeout=0.05)

        # the stuck thread is still tracked rather than forgotten
        assert sweeper.running is True
        assert len(_live_sweeper_threads()) == 1

        threading.Timer(0.1, gate.set).start()
        sweeper.start()

        assert sweeper.running is True
        assert len(_live_sweeper_threads()) == 1
    finally:
        gate.set()
        sweeper.stop()

    assert sweeper.running is False
    assert _live_sweeper_threads() == []
