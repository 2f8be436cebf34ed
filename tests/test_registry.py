"""
Unit tests for scanner/registry.py -- dedup and freshness window.
"""

from scanner.models import Venue
from scanner.registry import PoolRegistry

WINDOW = 300_000
T0 = 1_700_000_000_000


class TestRecordIfNew:
    def test_first_sighting_returns_true(self):
        reg = PoolRegistry(window_ms=WINDOW)
        assert reg.record_if_new("pool1", Venue.RAYDIUM, now=T0) is True
        assert "pool1" in reg
        assert len(reg) == 1

    def test_second_sighting_returns_false(self):
        reg = PoolRegistry(window_ms=WINDOW)
        assert reg.record_if_new("pool1", now=T0) is True
        assert reg.record_if_new("pool1", now=T0 + 1_000) is False

    def test_repeat_leaves_record_untouched(self):
        """first_seen_at and venue are never rewritten by a repeat sighting."""
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", Venue.RAYDIUM, now=T0)
        reg.record_if_new("pool1", Venue.METEORA, now=T0 + 5_000)
        record = reg.get("pool1")
        assert record.first_seen_at == T0
        assert record.last_seen_at == T0
        assert record.venue is Venue.RAYDIUM

    def test_new_again_after_eviction(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", now=T0)
        reg.evict_expired(T0 + WINDOW)
        assert reg.record_if_new("pool1", now=T0 + WINDOW) is True

    def test_defaults_to_wall_clock(self):
        reg = PoolRegistry()
        reg.record_if_new("pool1")
        assert reg.get("pool1").first_seen_at > 0


class TestTouch:
    def test_last_seen_only_moves_forward(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", now=T0)
        reg.touch("pool1", T0 + 10_000)
        reg.touch("pool1", T0 + 5_000)
        assert reg.get("pool1").last_seen_at == T0 + 10_000

    def test_touch_does_not_extend_freshness(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", now=T0)
        reg.touch("pool1", T0 + WINDOW - 1)
        assert reg.fresh_addresses(T0 + WINDOW) == []

    def test_touch_unknown_address_is_noop(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.touch("ghost", T0)
        assert "ghost" not in reg


class TestFreshAddresses:
    def test_inside_window_is_fresh(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", now=T0)
        assert reg.fresh_addresses(T0 + WINDOW - 1) == ["pool1"]

    def test_exactly_window_is_not_fresh(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", now=T0)
        assert reg.fresh_addresses(T0 + WINDOW) == []

    def test_never_includes_stale_addresses(self):
        """At every sampled time, nothing older than the window is returned."""
        reg = PoolRegistry(window_ms=WINDOW)
        for i in range(10):
            reg.record_if_new(f"pool{i}", now=T0 + i * 60_000)
        for ts in range(T0, T0 + 20 * 60_000, 30_000):
            for address in reg.fresh_addresses(ts):
                assert ts - reg.get(address).first_seen_at < WINDOW

    def test_discovery_order(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("b", now=T0)
        reg.record_if_new("a", now=T0 + 1)
        reg.record_if_new("c", now=T0 + 2)
        assert reg.fresh_addresses(T0 + 3) == ["b", "a", "c"]


class TestEvictExpired:
    def test_evicts_only_expired(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("old", now=T0)
        reg.record_if_new("new", now=T0 + 200_000)
        evicted = reg.evict_expired(T0 + WINDOW)
        assert evicted == ["old"]
        assert "old" not in reg
        assert "new" in reg

    def test_eviction_agrees_with_freshness(self):
        """Whatever is not fresh is exactly what gets evicted."""
        reg = PoolRegistry(window_ms=WINDOW)
        for i in range(6):
            reg.record_if_new(f"pool{i}", now=T0 + i * 100_000)
        now = T0 + 450_000
        fresh = set(reg.fresh_addresses(now))
        evicted = set(reg.evict_expired(now))
        assert fresh.isdisjoint(evicted)
        assert fresh | evicted == {f"pool{i}" for i in range(6)}

    def test_pinned_address_survives(self):
        """An address with an in-flight attempt is never evicted."""
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("busy", now=T0)
        reg.record_if_new("idle", now=T0)
        evicted = reg.evict_expired(T0 + WINDOW, pinned={"busy"})
        assert evicted == ["idle"]
        assert "busy" in reg
        # Pinned but expired is still not fresh
        assert reg.fresh_addresses(T0 + WINDOW) == []
        # Released on a later call
        assert reg.evict_expired(T0 + WINDOW + 1) == ["busy"]

    def test_empty_registry(self):
        reg = PoolRegistry(window_ms=WINDOW)
        assert reg.evict_expired(T0) == []


class TestRetired:
    def test_evicted_addresses_are_retired(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("pool1", now=T0)
        assert not reg.is_retired("pool1")
        reg.evict_expired(T0 + WINDOW)
        assert reg.is_retired("pool1")
        assert reg.retired_count == 1

    def test_retire_skips_live_records(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.record_if_new("live", now=T0)
        assert reg.retire(["live", "old1", "old2", "old1"]) == 2
        assert not reg.is_retired("live")
        assert reg.is_retired("old1")
        # Retired addresses are known, not registered
        assert "old1" not in reg
        assert reg.fresh_addresses(T0) == ["live"]

    def test_record_if_new_clears_retirement(self):
        reg = PoolRegistry(window_ms=WINDOW)
        reg.retire(["pool1"])
        assert reg.record_if_new("pool1", now=T0) is True
        assert not reg.is_retired("pool1")
