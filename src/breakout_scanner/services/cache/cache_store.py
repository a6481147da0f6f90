"""TTL-bounded cache on top of a plain key/value store."""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ...config.logging import get_logger
from .backends import KeyValueStore

logger = get_logger(__name__)

DAY_TTL_MINUTES = 24 * 60


def price_cache_key(ticker: str, trading_day: str) -> str:
    """Cache key for one ticker's bar on one trading day."""
    return f"stock_{ticker.upper()}_{trading_day}"


@dataclass(frozen=True)
class CacheEntry:
    """Stored payload with its age and lifetime."""

    key: str
    payload: Any
    stored_at: datetime
    ttl_minutes: Optional[float]

    def is_expired(self, now: datetime) -> bool:
        if self.ttl_minutes is None:
            return False
        return now - self.stored_at > timedelta(minutes=self.ttl_minutes)

    def to_json(self) -> str:
        return json.dumps(
            {
                "payload": self.payload,
                "stored_at": self.stored_at.isoformat(),
                "ttl_minutes": self.ttl_minutes,
            }
        )

    @classmethod
    def from_json(cls, key: str, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            key=key,
            payload=data["payload"],
            stored_at=datetime.fromisoformat(data["stored_at"]),
            ttl_minutes=data.get("ttl_minutes"),
        )


class CacheStore:
    """
    Keyed, TTL-bounded cache.

    An expired entry behaves exactly like a missing one: ``get`` returns
    ``None`` and the stale row is dropped from the backend.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        now_func: Optional[Callable[[], datetime]] = None,
    ):
        self.backend = backend
        self._now = now_func or datetime.now
        self.logger = logger.bind(component="cache_store")

    def get(self, key: str) -> Any:
        raw = self.backend.get(key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.from_json(key, raw)
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning("Discarding unreadable cache entry", key=key, error=str(e))
            self.backend.remove(key)
            return None

        if entry.is_expired(self._now()):
            self.backend.remove(key)
            return None

        return entry.payload

    def set(self, key: str, payload: Any, ttl_minutes: Optional[float] = None) -> None:
        entry = CacheEntry(
            key=key, payload=payload, stored_at=self._now(), ttl_minutes=ttl_minutes
        )
        self.backend.set(key, entry.to_json())

    def invalidate(self, key: str) -> None:
        self.backend.remove(key)

    def purge_expired(self) -> int:
        """Drop every expired or unreadable entry; returns how many were removed."""
        removed = 0
        for key in self.backend.keys():
            raw = self.backend.get(key)
            if raw is None:
                continue
            try:
                expired = CacheEntry.from_json(key, raw).is_expired(self._now())
            except (ValueError, KeyError, TypeError):
                expired = True
            if expired:
                self.backend.remove(key)
                removed += 1

        if removed:
            self.logger.info("Purged expired cache entries", removed=removed)
        return removed
