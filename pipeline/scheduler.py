"""
Fixed-interval tick scheduler with an explicit "tick in progress" guard.

A fire that arrives while a tick is still running is deferred, never run in
parallel. Overrunning ticks push the next one back instead of stacking.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 15_000


class Scheduler:
    def __init__(self, tick: Callable[[], object], interval_ms: int = DEFAULT_INTERVAL_MS):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._tick = tick
        self._interval_sec = interval_ms / 1000.0
        self._tick_lock = threading.Lock()
        self.ticks_run = 0
        self.ticks_deferred = 0
        self.ticks_failed = 0

    @property
    def tick_in_progress(self) -> bool:
        return self._tick_lock.locked()

    def run_once(self) -> bool:
        """Run one tick unless one is already in progress. Returns False if deferred."""
        if not self._tick_lock.acquire(blocking=False):
            self.ticks_deferred += 1
            logger.info("Tick still in progress, deferring this fire")
            return False
        try:
            self._tick()
        except Exception as e:
            # Full traceback goes to the debug log file; console gets clean summary
            self.ticks_failed += 1
            logger.error("Tick failed: %s", e, exc_info=True)
        finally:
            self.ticks_run += 1
            self._tick_lock.release()
        return True

    def run_forever(self, stop_event: threading.Event, max_ticks: int | None = None) -> None:
        """Tick every interval until stop_event is set (or max_ticks have run)."""
        while not stop_event.is_set():
            tick_start = time.monotonic()
            self.run_once()
            if max_ticks is not None and self.ticks_run >= max_ticks:
                break
            remaining = self._interval_sec - (time.monotonic() - tick_start)
            if remaining > 0:
                logger.debug("Sleeping %.1fs until next tick...", remaining)
                stop_event.wait(remaining)
            else:
                logger.warning("Tick overran interval by %.1fs, starting next tick now", -remaining)
