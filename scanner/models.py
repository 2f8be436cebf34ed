"""
Data models for the new-pool scanner. Pure data, no behavior beyond
small derived properties.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum


def now_ms() -> int:
    """Wall-clock time in integer milliseconds since the epoch."""
    return int(time.time() * 1000)


class Venue(Enum):
    RAYDIUM = "raydium"
    METEORA = "meteora"


class Direction(Enum):
    BUY_A_SELL_B = "buy_a_sell_b"
    BUY_B_SELL_A = "buy_b_sell_a"

    def token_in(self, pool: PoolSnapshot) -> str:
        """Mint sold into the pool for this direction."""
        return pool.mint_b if self is Direction.BUY_A_SELL_B else pool.mint_a

    def token_out(self, pool: PoolSnapshot) -> str:
        """Mint received from the pool for this direction."""
        return pool.mint_a if self is Direction.BUY_A_SELL_B else pool.mint_b

    def reserves(self, pool: PoolSnapshot) -> tuple[float, float]:
        """(reserve_in, reserve_out) for this direction."""
        if self is Direction.BUY_A_SELL_B:
            return pool.reserve_b, pool.reserve_a
        return pool.reserve_a, pool.reserve_b


class AttemptStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PoolSnapshot:
    address: str
    venue: Venue
    mint_a: str
    mint_b: str
    reserve_a: float  # base units
    reserve_b: float  # base units
    fee_a: float  # fee rate charged on the token A side (fraction)
    fee_b: float  # fee rate charged on the token B side (fraction)
    tvl: float  # USD
    volume_24h: float  # USD
    observed_at: int  # ms
    opened_at: int | None = None  # ms, venue-reported pool open time when available

    @property
    def min_reserve(self) -> float:
        return min(self.reserve_a, self.reserve_b)


@dataclass
class PoolRecord:
    """Registry bookkeeping for one address. Freshness is gated on first_seen_at only."""
    address: str
    first_seen_at: int
    last_seen_at: int
    venue: Venue | None = None


@dataclass(frozen=True)
class OpportunityCandidate:
    pool: PoolSnapshot
    venue: Venue
    imbalance_score: float
    fee_ratio: float
    direction: Direction
    discovered_at: int

    @property
    def address(self) -> str:
        return self.pool.address


@dataclass
class ExecutionAttempt:
    """Outcome of one execution attempt for one candidate within one tick."""
    candidate: OpportunityCandidate
    status: AttemptStatus = AttemptStatus.PENDING
    loan_amount: float = 0.0
    settlement_handle: str | None = None
    error_reason: str | None = None
    elapsed_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is AttemptStatus.SUCCEEDED


@dataclass(frozen=True)
class UnsignedTransaction:
    venue: Venue
    payload: str  # base64-encoded serialized transaction
    description: str = ""


@dataclass(frozen=True)
class FetchFailure:
    """Per-venue or per-address fetch error. A warning value, never raised."""
    venue: Venue
    reason: str
    address: str | None = None

    def __str__(self) -> str:
        where = f"{self.venue.value}:{self.address}" if self.address else self.venue.value
        return f"{where} -> {self.reason}"
