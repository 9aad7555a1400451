"""
Debounced background saver.

Callers mark a save as pending with ``request_save()``; a single worker
thread wakes every ``tick_interval`` seconds and flushes once the newest
request is at least ``debounce`` seconds old. A burst of requests therefore
collapses into one write, landing between ``debounce`` and
``debounce + tick_interval`` after the last request of the burst.

The pending marker is a single float (or None when idle). Reads and writes
of an attribute are atomic under the interpreter lock, so no other locking
is used.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .logging_utils import LoggerLike, ensure_structured_logger

DEFAULT_TICK_INTERVAL = 1.0
DEFAULT_DEBOUNCE = 1.0


class SaveScheduler:
    """Owns the debounce marker and the worker thread that acts on it."""

    def __init__(
        self,
        save_callback: Callable[[], object],
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        debounce: float = DEFAULT_DEBOUNCE,
        clock: Callable[[], float] = time.monotonic,
        logger: LoggerLike = None,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        if debounce < 0:
            raise ValueError("debounce must not be negative")
        self._save_callback = save_callback
        self.tick_interval = float(tick_interval)
        self.debounce = float(debounce)
        self._clock = clock
        self._logger = ensure_structured_logger(logger, fallback_name="SaveScheduler")

        self._requested_at: Optional[float] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.flush_count = 0

    # ------------------------------------------------------------------
    # Marker

    def request_save(self) -> None:
        self._requested_at = self._clock()

    def clear(self) -> None:
        self._requested_at = None

    @property
    def pending(self) -> bool:
        return self._requested_at is not None

    @property
    def pending_since(self) -> Optional[float]:
        return self._requested_at

    def flush_if_due(self) -> bool:
        """Run one scheduler tick. Returns True when a save was performed."""
        requested_at = self._requested_at
        if requested_at is None:
            return False
        if self._clock() - requested_at < self.debounce:
            return False

        # Clear before saving so requests made during the write re-arm the marker.
        self._requested_at = None
        self._logger.debug("Saving to disk...")
        try:
            self._save_callback()
        except Exception:
            self._logger.exception("Scheduled save failed")
        self.flush_count += 1
        return True

    # ------------------------------------------------------------------
    # Worker lifecycle

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="ConfigSaveScheduler", daemon=True)
        self._thread.start()
        self._logger.debug(
            "Save scheduler started (tick=%.2fs, debounce=%.2fs)", self.tick_interval, self.debounce
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the worker and wait for it. A pending save is not drained."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                self._logger.warning("Save scheduler did not stop within %.1fs", timeout or 0.0)
        self._thread = None
        if self.pending:
            self._logger.info("Save scheduler stopped with a save still pending")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.flush_if_due()
            if self._stop_event.wait(self.tick_interval):
                break


__all__ = ["SaveScheduler", "DEFAULT_TICK_INTERVAL", "DEFAULT_DEBOUNCE"]
