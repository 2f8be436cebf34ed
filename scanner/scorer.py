"""
Imbalance scoring for freshly listed pools.

The score is the absolute deviation of the fee ratio fee_a / fee_b from 1.
Illiquid pools (low TVL or low 24h volume) are rejected outright: their
imbalance is noise. Whether a candidate is actionable is decided by the
caller against the eligibility threshold, not here.
"""

from __future__ import annotations

import logging

from scanner.models import Direction, OpportunityCandidate, PoolSnapshot

logger = logging.getLogger(__name__)

DEFAULT_MIN_TVL = 1000.0
DEFAULT_MIN_VOLUME = 5000.0
DEFAULT_ELIGIBILITY_THRESHOLD = 0.10


class OpportunityScorer:
    """Pure: the same snapshot always yields the same candidate."""

    def __init__(self, min_tvl: float = DEFAULT_MIN_TVL, min_volume: float = DEFAULT_MIN_VOLUME):
        self.min_tvl = min_tvl
        self.min_volume = min_volume

    def evaluate(self, snapshot: PoolSnapshot) -> OpportunityCandidate | None:
        if snapshot.tvl < self.min_tvl or snapshot.volume_24h < self.min_volume:
            return None

        # Zero fee on the B side is floored to 1
        fee_b = snapshot.fee_b if snapshot.fee_b != 0 else 1.0
        fee_ratio = snapshot.fee_a / fee_b
        imbalance = abs(1.0 - fee_ratio)

        # ratio > 1: token A is overpriced relative to B, so sell A for B
        direction = Direction.BUY_B_SELL_A if fee_ratio > 1.0 else Direction.BUY_A_SELL_B

        return OpportunityCandidate(
            pool=snapshot,
            venue=snapshot.venue,
            imbalance_score=imbalance,
            fee_ratio=fee_ratio,
            direction=direction,
            discovered_at=snapshot.observed_at,
        )


def is_actionable(
    candidate: OpportunityCandidate,
    threshold: float = DEFAULT_ELIGIBILITY_THRESHOLD,
) -> bool:
    return candidate.imbalance_score > threshold


def rank_candidates(candidates: list[OpportunityCandidate]) -> list[OpportunityCandidate]:
    """Highest imbalance first. Display only; execution keeps discovery order."""
    return sorted(candidates, key=lambda c: c.imbalance_score, reverse=True)
