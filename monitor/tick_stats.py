"""
Session-level counters accumulated across ticks, summarized on shutdown.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field

from pipeline.tick import TickReport
from scanner.models import AttemptStatus


@dataclass
class TickStats:
    total_ticks: int = 0
    total_listed: int = 0
    total_new_pools: int = 0
    total_evicted: int = 0
    total_candidates: int = 0
    total_actionable: int = 0
    attempts_by_status: Counter = field(default_factory=Counter)
    fetch_failures_by_venue: Counter = field(default_factory=Counter)
    best_score_seen: float = 0.0
    best_score_pool: str = ""
    _session_start: float = field(default_factory=time.time)

    def record(self, report: TickReport) -> None:
        self.total_ticks += 1
        self.total_listed += report.listed
        self.total_new_pools += report.new_pools
        self.total_evicted += report.evicted
        self.total_candidates += len(report.candidates)
        self.total_actionable += len(report.actionable)
        for attempt in report.attempts:
            self.attempts_by_status[attempt.status.value] += 1
        for failure in report.failures:
            self.fetch_failures_by_venue[failure.venue.value] += 1
        for candidate in report.candidates:
            if candidate.imbalance_score > self.best_score_seen:
                self.best_score_seen = candidate.imbalance_score
                self.best_score_pool = candidate.address

    @property
    def succeeded(self) -> int:
        return self.attempts_by_status[AttemptStatus.SUCCEEDED.value]

    @property
    def failed(self) -> int:
        return self.attempts_by_status[AttemptStatus.FAILED.value]

    @property
    def session_duration_sec(self) -> float:
        return time.time() - self._session_start

    def summary(self) -> dict:
        return {
            "ticks": self.total_ticks,
            "duration_sec": round(self.session_duration_sec, 1),
            "new_pools": self.total_new_pools,
            "evicted": self.total_evicted,
            "candidates": self.total_candidates,
            "actionable": self.total_actionable,
            "attempts": dict(self.attempts_by_status),
            "fetch_failures": dict(self.fetch_failures_by_venue),
            "best_score": round(self.best_score_seen, 4),
            "best_score_pool": self.best_score_pool,
        }
