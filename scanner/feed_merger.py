"""
Feed merger. Fans out one request per venue (or per pool address) on a
thread pool and merges the results. A venue or address that errors
contributes nothing and one FetchFailure warning; it never aborts the rest.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from client.venue import VenueClient
from scanner.models import FetchFailure, PoolSnapshot, Venue

logger = logging.getLogger(__name__)


@dataclass
class FeedResult:
    snapshots: list[PoolSnapshot] = field(default_factory=list)
    failures: list[FetchFailure] = field(default_factory=list)


class FeedMerger:
    def __init__(self, venues: dict[Venue, VenueClient], max_workers: int = 8):
        if not venues:
            raise ValueError("FeedMerger needs at least one venue client")
        self._venues = dict(venues)
        self._max_workers = max_workers

    @property
    def venues(self) -> dict[Venue, VenueClient]:
        return self._venues

    def fetch_all(self) -> FeedResult:
        """One listing request per venue, in parallel."""
        result = FeedResult()
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(self._venues))) as executor:
            futures = {
                venue: executor.submit(client.list_pools)
                for venue, client in self._venues.items()
            }
            for venue, future in futures.items():
                try:
                    pools = future.result()
                except Exception as e:
                    failure = FetchFailure(venue=venue, reason=f"{type(e).__name__}: {e}")
                    logger.warning(
                        "Listing failed for %s: %s", venue.value, failure.reason,
                        extra={"venue": venue.value},
                    )
                    result.failures.append(failure)
                    continue
                logger.debug("  %s: %d pools listed", venue.value, len(pools))
                result.snapshots.extend(pools)
        return result

    def fetch_pools(self, targets: list[tuple[str, Venue]]) -> FeedResult:
        """
        Refetch live snapshots for (address, venue) pairs in parallel.
        Snapshots come back in the order of `targets`; failed addresses are dropped.
        """
        result = FeedResult()
        if not targets:
            return result
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(targets))) as executor:
            futures = []
            for address, venue in targets:
                client = self._venues.get(venue)
                if client is None:
                    result.failures.append(
                        FetchFailure(venue=venue, address=address, reason="venue not configured")
                    )
                    continue
                futures.append((address, venue, executor.submit(client.fetch_pool, address)))
            for address, venue, future in futures:
                try:
                    result.snapshots.append(future.result())
                except Exception as e:
                    failure = FetchFailure(venue=venue, address=address, reason=f"{type(e).__name__}: {e}")
                    logger.warning(
                        "Snapshot fetch failed for %s on %s: %s", address, venue.value, failure.reason,
                        extra={"pool": address, "venue": venue.value},
                    )
                    result.failures.append(failure)
        return result
