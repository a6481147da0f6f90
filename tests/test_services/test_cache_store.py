"""Tests for the TTL cache and its backends."""

import sys
from datetime import timedelta

import pytest

sys.path.append("src")
from breakout_scanner.services.cache.backends import MemoryKeyValueStore, SqlKeyValueStore
from breakout_scanner.services.cache.cache_store import CacheStore, price_cache_key


class TestCacheStore:
    """Test TTL semantics on top of the memory backend."""

    def test_set_and_get(self, memory_cache):
        """Test a fresh entry is returned unchanged."""
        memory_cache.set("key", {"price": 101.5}, ttl_minutes=10)

        assert memory_cache.get("key") == {"price": 101.5}

    def test_missing_key_returns_none(self, memory_cache):
        """Test a missing key reads as None."""
        assert memory_cache.get("nope") is None

    def test_expired_entry_behaves_like_missing(self, clock, memory_cache):
        """Test that an entry past its TTL is absent and removed from the backend."""
        memory_cache.set("key", [1, 2, 3], ttl_minutes=5)
        clock.current += timedelta(minutes=6)

        assert memory_cache.get("key") is None
        assert memory_cache.backend.get("key") is None

    def test_entry_at_exact_ttl_is_still_present(self, clock, memory_cache):
        """Test that expiry needs strictly more than the TTL to pass."""
        memory_cache.set("key", "value", ttl_minutes=5)
        clock.current += timedelta(minutes=5)

        assert memory_cache.get("key") == "value"

    def test_entry_without_ttl_never_expires(self, clock, memory_cache):
        """Test that ttl_minutes=None keeps entries indefinitely."""
        memory_cache.set("key", "value")
        clock.current += timedelta(days=365)

        assert memory_cache.get("key") == "value"

    def test_invalidate(self, memory_cache):
        """Test explicit invalidation."""
        memory_cache.set("key", "value", ttl_minutes=5)
        memory_cache.invalidate("key")

        assert memory_cache.get("key") is None

    def test_unreadable_entry_is_dropped(self, memory_cache):
        """Test that corrupt raw values are treated as missing."""
        memory_cache.backend.set("key", "not json at all")

        assert memory_cache.get("key") is None
        assert memory_cache.backend.get("key") is None

    def test_purge_expired(self, clock, memory_cache):
        """Test purging removes only expired and unreadable entries."""
        memory_cache.set("old", 1, ttl_minutes=1)
        memory_cache.set("new", 2, ttl_minutes=60)
        memory_cache.backend.set("junk", "{")
        clock.current += timedelta(minutes=2)

        assert memory_cache.purge_expired() == 2
        assert memory_cache.backend.keys() == ["new"]

    def test_price_cache_key_uses_ticker_and_day(self):
        """Test the trading-day partitioned key format."""
        assert price_cache_key("aapl", "2024-01-03") == "stock_AAPL_2024-01-03"


class TestSqlKeyValueStore:
    """Test the SQLAlchemy-backed store."""

    def test_round_trip_and_overwrite(self, isolated_db):
        """Test set, overwrite, get and remove against SQLite."""
        store = SqlKeyValueStore(isolated_db)

        store.set("a", "1")
        store.set("a", "2")

        assert store.get("a") == "2"
        assert store.keys() == ["a"]

        store.remove("a")
        assert store.get("a") is None

    def test_database_health(self, isolated_db):
        assert isolated_db.check_health()["status"] == "healthy"

    def test_remove_missing_key_is_noop(self, isolated_db):
        """Test removing an unknown key does not raise."""
        SqlKeyValueStore(isolated_db).remove("missing")

    def test_cache_store_over_sql_backend(self, clock, isolated_db):
        """Test CacheStore payloads survive a new store instance."""
        CacheStore(SqlKeyValueStore(isolated_db), now_func=clock.now).set(
            "watchlist", [{"ticker": "AAPL"}], ttl_minutes=60
        )

        reopened = CacheStore(SqlKeyValueStore(isolated_db), now_func=clock.now)
        assert reopened.get("watchlist") == [{"ticker": "AAPL"}]


class TestMemoryKeyValueStore:
    """Test the in-process store."""

    def test_basic_operations(self):
        store = MemoryKeyValueStore()
        store.set("x", "1")

        assert store.get("x") == "1"
        store.remove("x")
        store.remove("x")
        assert store.keys() == []
