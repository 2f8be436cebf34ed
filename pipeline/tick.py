"""
One scan tick: list -> register -> evict -> fresh -> refetch -> score -> execute.

Per-venue and per-candidate failures are isolated; the tick always runs to
completion and reports what happened in a TickReport.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from executor.coordinator import ExecutionCoordinator
from scanner.feed_merger import FeedMerger
from scanner.models import (
    AttemptStatus,
    ExecutionAttempt,
    FetchFailure,
    OpportunityCandidate,
    PoolSnapshot,
    Venue,
    now_ms,
)
from scanner.registry import PoolRegistry
from scanner.scorer import DEFAULT_ELIGIBILITY_THRESHOLD, OpportunityScorer, is_actionable

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    tick: int
    started_at: int
    listed: int = 0
    new_pools: int = 0
    baseline: int = 0
    evicted: int = 0
    fresh: int = 0
    refreshed: int = 0
    candidates: list[OpportunityCandidate] = field(default_factory=list)
    actionable: list[OpportunityCandidate] = field(default_factory=list)
    attempts: list[ExecutionAttempt] = field(default_factory=list)
    failures: list[FetchFailure] = field(default_factory=list)
    elapsed_ms: float = 0.0

    def count(self, status: AttemptStatus) -> int:
        return sum(1 for a in self.attempts if a.status is status)


class ScanPipeline:
    """
    Owns nothing global: the registry, feeds, scorer and coordinator are
    injected. With coordinator=None the pipeline scans and scores only.

    Full venue listings include every existing pool. Pools already listed on
    a venue's first successful listing are retired as a baseline, unless
    the venue reports an open time, which is then compared to the window.
    """

    def __init__(
        self,
        registry: PoolRegistry,
        feeds: FeedMerger,
        scorer: OpportunityScorer,
        coordinator: ExecutionCoordinator | None = None,
        eligibility_threshold: float = DEFAULT_ELIGIBILITY_THRESHOLD,
        baseline_first_listing: bool = True,
        clock: Callable[[], int] = now_ms,
    ):
        self.registry = registry
        self.feeds = feeds
        self.scorer = scorer
        self.coordinator = coordinator
        self.eligibility_threshold = eligibility_threshold
        self.baseline_first_listing = baseline_first_listing
        self._clock = clock
        self._tick = 0
        # Venues whose pre-existing pools have been retired as a baseline
        self._seeded: set[Venue] = set()

    @property
    def ticks_run(self) -> int:
        return self._tick

    def run_tick(self, now: int | None = None) -> TickReport:
        self._tick += 1
        start = time.time()
        now = self._clock() if now is None else now
        report = TickReport(tick=self._tick, started_at=now)

        # Step 1: list pools on every venue
        listing = self.feeds.fetch_all()
        report.listed = len(listing.snapshots)
        report.failures.extend(listing.failures)

        # Step 2: register pools that are new since the scanner started watching
        for snap in listing.snapshots:
            if snap.address in self.registry:
                self.registry.touch(snap.address, now)
            elif self.registry.is_retired(snap.address):
                continue
            elif self._is_new_listing(snap, now):
                self.registry.record_if_new(snap.address, snap.venue, now)
                report.new_pools += 1
            else:
                report.baseline += self.registry.retire([snap.address])
        failed_venues = {f.venue for f in listing.failures}
        self._seeded.update(v for v in self.feeds.venues if v not in failed_venues)

        # Step 3: evict, then take what is still fresh
        pinned = self.coordinator.in_flight() if self.coordinator is not None else frozenset()
        report.evicted = len(self.registry.evict_expired(now, pinned))
        fresh = self.registry.fresh_addresses(now)
        report.fresh = len(fresh)

        # Step 4: live refetch per fresh pool, discovery order preserved
        targets: list[tuple[str, Venue]] = []
        for address in fresh:
            record = self.registry.get(address)
            if record is not None and record.venue is not None:
                targets.append((address, record.venue))
        live = self.feeds.fetch_pools(targets)
        report.refreshed = len(live.snapshots)
        report.failures.extend(live.failures)

        # Step 5: score and gate
        for snap in live.snapshots:
            candidate = self.scorer.evaluate(snap)
            if candidate is None:
                continue
            report.candidates.append(candidate)
            if is_actionable(candidate, self.eligibility_threshold):
                report.actionable.append(candidate)

        # Step 6: execute, one candidate at a time
        if self.coordinator is not None:
            for candidate in report.actionable:
                report.attempts.append(self.coordinator.attempt(candidate))

        report.elapsed_ms = (time.time() - start) * 1000
        logger.debug(
            "Tick %d: listed=%d new=%d baseline=%d evicted=%d fresh=%d candidates=%d actionable=%d attempts=%d failures=%d (%.0fms)",
            report.tick, report.listed, report.new_pools, report.baseline, report.evicted, report.fresh,
            len(report.candidates), len(report.actionable), len(report.attempts),
            len(report.failures), report.elapsed_ms,
            extra={"tick": report.tick},
        )
        return report

    def _is_new_listing(self, snap: PoolSnapshot, now: int) -> bool:
        """
        A venue-reported open time decides directly. Otherwise, a venue's
        first successful listing is the baseline and nothing on it is new.
        """
        if snap.opened_at is not None:
            return now - snap.opened_at < self.registry.window_ms
        return not self.baseline_first_listing or snap.venue in self._seeded
