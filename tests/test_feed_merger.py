"""
Unit tests for scanner/feed_merger.py -- parallel fan-out with per-venue isolation.
"""

import threading
from unittest.mock import MagicMock

import httpx
import pytest

from scanner.feed_merger import FeedMerger
from scanner.models import PoolSnapshot, Venue


def _snap(address: str, venue: Venue = Venue.RAYDIUM) -> PoolSnapshot:
    return PoolSnapshot(
        address=address,
        venue=venue,
        mint_a="mintA",
        mint_b="mintB",
        reserve_a=1000.0,
        reserve_b=1000.0,
        fee_a=0.0025,
        fee_b=0.0025,
        tvl=5000.0,
        volume_24h=10000.0,
        observed_at=1,
    )


def _client(venue: Venue, pools=None, error: Exception | None = None, by_address=None):
    client = MagicMock()
    client.venue = venue
    if error is not None:
        client.list_pools.side_effect = error
    else:
        client.list_pools.return_value = pools or []
    if by_address is not None:
        def _fetch(address):
            value = by_address[address]
            if isinstance(value, Exception):
                raise value
            return value
        client.fetch_pool.side_effect = _fetch
    return client


class TestFetchAll:
    def test_merges_all_venues(self):
        merger = FeedMerger({
            Venue.RAYDIUM: _client(Venue.RAYDIUM, [_snap("r1"), _snap("r2")]),
            Venue.METEORA: _client(Venue.METEORA, [_snap("m1", Venue.METEORA)]),
        })
        result = merger.fetch_all()
        assert {s.address for s in result.snapshots} == {"r1", "r2", "m1"}
        assert result.failures == []

    def test_failing_venue_does_not_abort_others(self):
        """One venue's RPC error still yields the other venue's snapshots."""
        merger = FeedMerger({
            Venue.RAYDIUM: _client(Venue.RAYDIUM, error=httpx.ConnectError("Connection refused")),
            Venue.METEORA: _client(Venue.METEORA, [_snap("m1", Venue.METEORA)]),
        })
        result = merger.fetch_all()
        assert [s.address for s in result.snapshots] == ["m1"]
        assert len(result.failures) == 1
        assert result.failures[0].venue is Venue.RAYDIUM
        assert "Connection refused" in result.failures[0].reason
        assert result.failures[0].address is None

    def test_all_venues_failing_returns_empty(self):
        merger = FeedMerger({
            Venue.RAYDIUM: _client(Venue.RAYDIUM, error=RuntimeError("boom")),
            Venue.METEORA: _client(Venue.METEORA, error=ValueError("bad json")),
        })
        result = merger.fetch_all()
        assert result.snapshots == []
        assert {f.venue for f in result.failures} == {Venue.RAYDIUM, Venue.METEORA}

    def test_requests_run_in_parallel(self):
        """Both listings must be in flight at once: each waits for the other."""
        barrier = threading.Barrier(2, timeout=5)

        def _listing(address, venue):
            def _call():
                barrier.wait()
                return [_snap(address, venue)]
            return _call

        ray = MagicMock()
        ray.list_pools.side_effect = _listing("r1", Venue.RAYDIUM)
        met = MagicMock()
        met.list_pools.side_effect = _listing("m1", Venue.METEORA)
        result = FeedMerger({Venue.RAYDIUM: ray, Venue.METEORA: met}).fetch_all()
        assert len(result.snapshots) == 2
        assert result.failures == []

    def test_requires_a_venue(self):
        with pytest.raises(ValueError):
            FeedMerger({})


class TestFetchPools:
    def test_preserves_target_order(self):
        client = _client(Venue.RAYDIUM, by_address={
            "a": _snap("a"), "b": _snap("b"), "c": _snap("c"),
        })
        merger = FeedMerger({Venue.RAYDIUM: client})
        result = merger.fetch_pools([("c", Venue.RAYDIUM), ("a", Venue.RAYDIUM), ("b", Venue.RAYDIUM)])
        assert [s.address for s in result.snapshots] == ["c", "a", "b"]

    def test_failed_address_isolated(self):
        client = _client(Venue.RAYDIUM, by_address={
            "a": _snap("a"), "gone": httpx.HTTPStatusError(
                "404", request=httpx.Request("GET", "http://x"), response=httpx.Response(404),
            ),
            "b": _snap("b"),
        })
        merger = FeedMerger({Venue.RAYDIUM: client})
        result = merger.fetch_pools([("a", Venue.RAYDIUM), ("gone", Venue.RAYDIUM), ("b", Venue.RAYDIUM)])
        assert [s.address for s in result.snapshots] == ["a", "b"]
        assert len(result.failures) == 1
        assert result.failures[0].address == "gone"
        assert result.failures[0].venue is Venue.RAYDIUM

    def test_unconfigured_venue_reported(self):
        merger = FeedMerger({Venue.RAYDIUM: _client(Venue.RAYDIUM, by_address={})})
        result = merger.fetch_pools([("m1", Venue.METEORA)])
        assert result.snapshots == []
        assert result.failures[0].reason == "venue not configured"

    def test_empty_targets(self):
        merger = FeedMerger({Venue.RAYDIUM: _client(Venue.RAYDIUM)})
        result = merger.fetch_pools([])
        assert result.snapshots == []
        assert result.failures == []
