"""
Venue client protocol. Thin interface shared by every DEX venue.

Any client that satisfies this protocol can be bound to a Venue and plug
into the feed merger and execution coordinator with zero changes to
scanner/executor code.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from scanner.models import PoolSnapshot, UnsignedTransaction, Venue


@runtime_checkable
class VenueClient(Protocol):
    """Pool discovery, single-pool refresh and swap building for one venue."""

    @property
    def venue(self) -> Venue:
        ...

    def list_pools(self) -> list[PoolSnapshot]:
        """Fetch the venue's current pool listing."""
        ...

    def fetch_pool(self, address: str) -> PoolSnapshot:
        """Fetch a live snapshot for one pool. Raises if the pool is unknown."""
        ...

    def build_swap(
        self,
        amount_in: int,
        token_in: str,
        token_out: str,
        slippage_tolerance: float,
    ) -> UnsignedTransaction:
        """Build an unsigned swap transaction. amount_in is in base units."""
        ...


def parse_float(raw, default: float = 0.0) -> float:
    """Venue APIs return numbers as strings, floats or null."""
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default
