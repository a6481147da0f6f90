"""Trading-day keyed cache layer."""

from .backends import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore
from .cache_store import DAY_TTL_MINUTES, CacheEntry, CacheStore, price_cache_key

__all__ = [
    "CacheStore",
    "CacheEntry",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
    "price_cache_key",
    "DAY_TTL_MINUTES",
]
