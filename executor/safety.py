"""
Execution circuit breaker. Pauses execution after a run of failed attempts;
scanning is never halted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from scanner.models import now_ms

logger = logging.getLogger(__name__)


@dataclass
class CircuitBreaker:
    """
    Opens after `max_consecutive_failures` failed attempts in a row and stays
    open for `cooldown_ms`. Any success resets the failure streak.
    """
    max_consecutive_failures: int = 5
    cooldown_ms: int = 60_000

    _consecutive_failures: int = field(default=0, init=False, repr=False)
    _open_until: int = field(default=0, init=False, repr=False)

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def is_open(self, now: int | None = None) -> bool:
        ts = now_ms() if now is None else now
        return ts < self._open_until

    def record_success(self) -> None:
        self._consecutive_failures = 0

    def record_failure(self, now: int | None = None) -> None:
        ts = now_ms() if now is None else now
        self._consecutive_failures += 1
        if self._consecutive_failures >= self.max_consecutive_failures:
            self._open_until = ts + self.cooldown_ms
            logger.warning(
                "Circuit breaker open: %d consecutive failed attempts, pausing execution for %.0fs",
                self._consecutive_failures, self.cooldown_ms / 1000.0,
            )
            self._consecutive_failures = 0
