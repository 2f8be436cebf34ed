"""
Loan sizing with a hard cap relative to pool depth.
"""

from __future__ import annotations

import logging
import math

from scanner.models import PoolSnapshot

logger = logging.getLogger(__name__)

DEFAULT_LOAN_FRACTION = 0.03


def compute_loan_amount(pool: PoolSnapshot, loan_fraction: float = DEFAULT_LOAN_FRACTION) -> int:
    """
    Loan size in base units: a fixed fraction of the smaller reserve.
    Returns 0 if the pool has an empty side.
    """
    smaller = pool.min_reserve
    if smaller <= 0 or loan_fraction <= 0:
        return 0
    return int(math.floor(smaller * loan_fraction))


def expected_output(amount_in: float, reserve_in: float, reserve_out: float) -> float:
    """Constant-product output for amount_in, fees excluded."""
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0.0
    return reserve_out * amount_in / (reserve_in + amount_in)


def min_output_after_slippage(amount_out: float, slippage_tolerance: float) -> int:
    """Worst acceptable output given the slippage tolerance, in base units."""
    return int(math.floor(amount_out * (1.0 - slippage_tolerance)))
