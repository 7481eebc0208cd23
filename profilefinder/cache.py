"""
Resolution cache.

Entries are keyed by the normalized (first, last, organization) triple and
expire lazily: an entry older than the TTL is reported as a miss when read
but is left in the store until it is overwritten.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from .logger import get_logger
from .models import CACHEABLE_STATUSES, PersonQuery, ResolutionResult
from .normalize import cache_key
from .storage import KeyValueStore, MemoryStore

logger = get_logger()

KEY_PREFIX = "cache:"


@dataclass(frozen=True)
class CacheEntry:
    result: ResolutionResult
    timestamp: datetime
    search_calls: int = 0

    def expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.timestamp > ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "search_calls": self.search_calls,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            result=ResolutionResult.from_dict(data["result"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            search_calls=int(data.get("search_calls", 0)),
        )


class ResolutionCache:
    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store if store is not None else MemoryStore()
        self.ttl = ttl
        self._clock = clock
        self.hits = 0
        self.misses = 0
        self.writes = 0
        self.expired_reads = 0
        self.searches_saved = 0

    @staticmethod
    def key_for(person: PersonQuery) -> str:
        return cache_key(person.first_name, person.last_name, person.organization)

    def _read(self, key: str) -> Optional[CacheEntry]:
        raw = self.store.get(KEY_PREFIX + key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable cache entry", key=key, error=str(e))
            return None

    def get(self, key: str) -> Optional[ResolutionResult]:
        """Cached result for ``key``, or None when absent or expired."""
        entry = self._read(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.expired(self._clock(), self.ttl):
            self.misses += 1
            self.expired_reads += 1
            logger.debug("Cache entry expired", key=key, cached_at=entry.timestamp)
            return None
        self.hits += 1
        self.searches_saved += entry.search_calls
        return entry.result.cached_copy()

    def set(self, key: str, result: ResolutionResult, search_calls: int = 0) -> bool:
        """
        Write a result through to the store.

        Only resolved or rejected outcomes are cached; Not Found and Error
        results are retried on the next run. Returns True when written.
        """
        if result.status not in CACHEABLE_STATUSES:
            return False
        entry = CacheEntry(result=result, timestamp=self._clock(), search_calls=search_calls)
        self.store.set(KEY_PREFIX + key, entry.to_dict())
        self.writes += 1
        return True

    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return round(self.hits / lookups, 3) if lookups else 0.0

    def entry_counts(self) -> Dict[str, int]:
        """Live and expired entries currently held by the store."""
        now = self._clock()
        live = expired = 0
        for store_key in self.store.keys():
            if not store_key.startswith(KEY_PREFIX):
                continue
            entry = self._read(store_key[len(KEY_PREFIX):])
            if entry is None:
                continue
            if entry.expired(now, self.ttl):
                expired += 1
            else:
                live += 1
        return {"live": live, "expired": expired}

    def stats(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "expired_reads": self.expired_reads,
            "hit_rate": self.hit_rate(),
            "searches_saved": self.searches_saved,
        }
