"""Background sweep of stale admission counters.

Counters are otherwise only reset lazily, so one-off or rotating keys would
accumulate forever without a periodic sweep.
"""

from __future__ import annotations

import logging
import threading

from admission.adapters.rate_limit.base import AbstractAdmissionController

logger = logging.getLogger(__name__)


class CounterSweeper:
    """Daemon thread calling ``controller.sweep()`` on a fixed interval."""

    def __init__(self, controller: AbstractAdmissionController, *, interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._controller = controller
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread; calling it again while running is a no-op.

        If a previous ``stop()`` timed out, waits for that thread to exit
        before starting a new one so two sweep threads never overlap.
        """
        thread = self._thread
        if thread is not None and thread.is_alive():
            if not self._stop_event.is_set():
                return
            thread.join()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="admission-sweeper", daemon=True)
        self._thread.start()
        logger.info("admission.sweeper_started", extra={"interval_s": self._interval})

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the thread to exit and wait for it.

        The thread handle is kept while the thread is still alive after
        ``timeout``, so ``running`` keeps reporting it.
        """
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("admission.sweeper_stop_timeout", extra={"timeout_s": timeout})
            return
        self._thread = None
        logger.info("admission.sweeper_stopped")

    def run_once(self) -> int:
        removed = self._controller.sweep()
        logger.debug("admission.sweep", extra={"removed": removed})
        return removed

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.run_once()
            except Exception:
                # keep the thread alive; the next tick retries
                logger.exception("admission.sweep_failed")
