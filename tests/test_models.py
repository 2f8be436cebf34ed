"""
Unit tests for scanner/models.py -- data models.
"""

import dataclasses
import time

import pytest

from scanner.models import (
    AttemptStatus,
    Direction,
    ExecutionAttempt,
    FetchFailure,
    OpportunityCandidate,
    PoolSnapshot,
    Venue,
    now_ms,
)


def _pool(reserve_a=100.0, reserve_b=400.0) -> PoolSnapshot:
    return PoolSnapshot(
        address="pool1", venue=Venue.METEORA, mint_a="mintA", mint_b="mintB",
        reserve_a=reserve_a, reserve_b=reserve_b, fee_a=0.01, fee_b=0.0025,
        tvl=2000.0, volume_24h=6000.0, observed_at=1,
    )


class TestPoolSnapshot:
    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            _pool().tvl = 0.0

    def test_min_reserve(self):
        assert _pool(100.0, 400.0).min_reserve == 100.0
        assert _pool(900.0, 400.0).min_reserve == 400.0


class TestDirection:
    def test_buy_a_sell_b_spends_token_b(self):
        pool = _pool()
        assert Direction.BUY_A_SELL_B.token_in(pool) == "mintB"
        assert Direction.BUY_A_SELL_B.token_out(pool) == "mintA"
        assert Direction.BUY_A_SELL_B.reserves(pool) == (400.0, 100.0)

    def test_buy_b_sell_a_spends_token_a(self):
        pool = _pool()
        assert Direction.BUY_B_SELL_A.token_in(pool) == "mintA"
        assert Direction.BUY_B_SELL_A.token_out(pool) == "mintB"
        assert Direction.BUY_B_SELL_A.reserves(pool) == (100.0, 400.0)


class TestExecutionAttempt:
    def test_defaults_pending(self):
        candidate = OpportunityCandidate(
            pool=_pool(), venue=Venue.METEORA, imbalance_score=3.0, fee_ratio=4.0,
            direction=Direction.BUY_B_SELL_A, discovered_at=1,
        )
        attempt = ExecutionAttempt(candidate=candidate)
        assert attempt.status is AttemptStatus.PENDING
        assert not attempt.succeeded
        assert attempt.candidate.address == "pool1"


class TestFetchFailure:
    def test_str_venue_only(self):
        assert str(FetchFailure(Venue.RAYDIUM, "timeout")) == "raydium -> timeout"

    def test_str_with_address(self):
        assert str(FetchFailure(Venue.RAYDIUM, "404", address="p1")) == "raydium:p1 -> 404"


def test_now_ms_is_integer_milliseconds():
    before = int(time.time() * 1000)
    ts = now_ms()
    assert isinstance(ts, int)
    assert before <= ts <= before + 5_000
