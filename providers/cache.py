"""
TTL result cache for analyses and predictions.

Entries live in insertion order, so the oldest entry is always at the
front. Expired entries are dropped when looked up, and in bulk whenever
an insert finds the cache full. The clock is injectable so expiry can be
tested without sleeping.
"""
import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional

from loguru import logger

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float
    namespace: str
    query: str

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResponseCache:
    """Namespaced TTL cache. Thread-safe.

    Usage:
        cache = ResponseCache(default_ttl_seconds=600)
        analysis = cache.get("analysis", "btc:crypto:1w")
        if analysis is None:
            analysis = build_analysis(...)
            cache.set("analysis", "btc:crypto:1w", analysis)

    Queries are trimmed and lowercased before hashing, so "BTC:crypto:1W"
    and " btc:crypto:1w" share an entry. A hit hands back the stored
    object itself.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 300,
        max_entries: int = 5000,
        clock: Optional[Clock] = None
    ):
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()
        self._default_ttl = default_ttl_seconds
        self._max_entries = max(1, max_entries)
        self._clock = clock or time.monotonic
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _digest(namespace: str, query: str) -> str:
        return hashlib.md5(f"{namespace}:{query.strip().lower()}".encode()).hexdigest()

    def get(self, namespace: str, query: str) -> Optional[Any]:
        """Stored value, or None when missing or expired."""
        digest = self._digest(namespace, query)
        now = self._clock()

        with self._lock:
            entry = self._entries.get(digest)
            if entry is not None and entry.expired(now):
                del self._entries[digest]
                logger.debug(f"Cache entry expired: {namespace}:{query}")
                entry = None

            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(self, namespace: str, query: str, value: Any,
            ttl_seconds: Optional[float] = None) -> None:
        digest = self._digest(namespace, query)
        ttl = ttl_seconds if ttl_seconds else self._default_ttl
        now = self._clock()

        with self._lock:
            self._entries.pop(digest, None)
            if len(self._entries) >= self._max_entries:
                self._make_room(now)
            self._entries[digest] = CacheEntry(
                value=value,
                stored_at=now,
                expires_at=now + ttl,
                namespace=namespace,
                query=query,
            )

    def invalidate(self, namespace: Optional[str] = None) -> int:
        """Drop every entry, or only those in `namespace`. Returns the count removed."""
        with self._lock:
            if namespace is None:
                doomed = list(self._entries)
            else:
                doomed = [k for k, e in self._entries.items() if e.namespace == namespace]
            for k in doomed:
                del self._entries[k]
        logger.debug(f"Cache invalidated ({namespace or 'all'}): {len(doomed)} entries")
        return len(doomed)

    def _make_room(self, now: float) -> None:
        """Caller holds the lock. Expired entries go first, then the oldest."""
        for k in [k for k, e in self._entries.items() if e.expired(now)]:
            del self._entries[k]
        while len(self._entries) >= self._max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            by_namespace: Dict[str, int] = {}
            for entry in self._entries.values():
                by_namespace[entry.namespace] = by_namespace.get(entry.namespace, 0) + 1
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups * 100 if lookups else 0.0,
                "by_namespace": by_namespace,
            }
