"""
Pool registry. Deduplicates pool addresses and tracks a sliding freshness
window keyed on first observation.

A pool counts as "new" for `window_ms` after it is first seen, regardless of
later activity. Eviction and freshness filtering share one comparison so
they never disagree about what is fresh.

Evicted addresses, and addresses that were already listed before the
scanner started watching, are retired: they stay known so that a pool which
keeps appearing in full venue listings is never reported as new again.

Only mutated from inside the single active tick, so no lock is held here.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from scanner.models import PoolRecord, Venue, now_ms

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 300_000


class PoolRegistry:
    def __init__(self, window_ms: int = DEFAULT_WINDOW_MS):
        self._window_ms = window_ms
        # dict preserves insertion order == discovery order
        self._records: dict[str, PoolRecord] = {}
        self._retired: set[str] = set()

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def _is_fresh(self, record: PoolRecord, now: int) -> bool:
        return now - record.first_seen_at < self._window_ms

    def record_if_new(self, address: str, venue: Venue | None = None, now: int | None = None) -> bool:
        """
        Store a record for an unseen address and return True.
        Returns False and leaves the existing record untouched otherwise.
        """
        if address in self._records:
            return False
        ts = now_ms() if now is None else now
        self._records[address] = PoolRecord(
            address=address, first_seen_at=ts, last_seen_at=ts, venue=venue,
        )
        self._retired.discard(address)
        logger.debug("Registered new pool %s (%s)", address, venue.value if venue else "?")
        return True

    def touch(self, address: str, now: int) -> None:
        """Raise last_seen_at for a known address. Does not affect freshness."""
        record = self._records.get(address)
        if record is not None and now > record.last_seen_at:
            record.last_seen_at = now

    def fresh_addresses(self, now: int) -> list[str]:
        """Addresses still inside the freshness window, in discovery order."""
        return [a for a, r in self._records.items() if self._is_fresh(r, now)]

    def evict_expired(self, now: int, pinned: Collection[str] = ()) -> list[str]:
        """
        Drop records whose window has elapsed and retire their addresses.
        Addresses in `pinned` (attempts in flight) are kept until a later
        call. Returns evicted addresses.
        """
        expired = [
            a for a, r in self._records.items()
            if not self._is_fresh(r, now) and a not in pinned
        ]
        for address in expired:
            del self._records[address]
        self._retired.update(expired)
        if expired:
            logger.debug("Evicted %d expired pool(s), %d remain", len(expired), len(self._records))
        return expired

    def retire(self, addresses: Iterable[str]) -> int:
        """Mark addresses as already known and not new. Returns how many were added."""
        before = len(self._retired)
        self._retired.update(a for a in addresses if a not in self._records)
        return len(self._retired) - before

    def is_retired(self, address: str) -> bool:
        return address in self._retired

    @property
    def retired_count(self) -> int:
        return len(self._retired)

    def get(self, address: str) -> PoolRecord | None:
        return self._records.get(address)

    def __contains__(self, address: object) -> bool:
        return address in self._records

    def __len__(self) -> int:
        return len(self._records)
