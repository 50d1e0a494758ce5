# backend/mindfulness/core/cache.py
"""
In-process TTL cache for read-mostly catalogs (meditations, breathing patterns,
muscle groups) with per cache-type / per category counters.
"""
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

OVERALL = "overall"


@dataclass
class CacheCounters:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0
    errors: int = 0
    average_latency_ms: float = 0.0

    @property
    def operations(self) -> int:
        return self.hits + self.misses + self.sets + self.invalidations

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def record_latency(self, latency_ms: float) -> None:
        ops = self.operations
        if ops <= 0:
            return
        self.average_latency_ms = (self.average_latency_ms * (ops - 1) + latency_ms) / ops

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hit_rate"] = self.hit_rate
        return data


@dataclass
class _Entry:
    value: Any
    expires_at: float


class CatalogCache:
    """
    key space: (cache_type, category, key)
    `clock` is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str, str], _Entry] = {}
        self._stats: Dict[str, Dict[str, CacheCounters]] = {}

    # ---------- counters ----------
    def _counters(self, cache_type: str, category: str) -> Tuple[CacheCounters, CacheCounters]:
        by_category = self._stats.setdefault(cache_type, {OVERALL: CacheCounters()})
        if category not in by_category:
            by_category[category] = CacheCounters()
        return by_category[category], by_category[OVERALL]

    def _track(self, cache_type: str, category: str, field: str, started: float) -> None:
        latency_ms = (time.perf_counter() - started) * 1000
        for counters in self._counters(cache_type, category):
            setattr(counters, field, getattr(counters, field) + 1)
            if field != "errors":
                counters.record_latency(latency_ms)

    # ---------- cache ops ----------
    def get(self, cache_type: str, key: str, category: str = "default") -> Tuple[bool, Any]:
        started = time.perf_counter()
        entry = self._entries.get((cache_type, category, key))
        if entry is None or entry.expires_at <= self._clock():
            if entry is not None:
                del self._entries[(cache_type, category, key)]
            self._track(cache_type, category, "misses", started)
            return False, None
        self._track(cache_type, category, "hits", started)
        return True, entry.value

    def set(self, cache_type: str, key: str, value: Any, category: str = "default") -> None:
        started = time.perf_counter()
        self._entries[(cache_type, category, key)] = _Entry(value, self._clock() + self._ttl)
        self._track(cache_type, category, "sets", started)

    def invalidate(self, cache_type: str, category: Optional[str] = None) -> int:
        """Drop every entry of `cache_type` (optionally one category). Returns the count."""
        started = time.perf_counter()
        doomed = [
            k for k in self._entries
            if k[0] == cache_type and (category is None or k[1] == category)
        ]
        for k in doomed:
            del self._entries[k]
        self._track(cache_type, category or "default", "invalidations", started)
        return len(doomed)

    async def get_or_load(
        self,
        cache_type: str,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        category: str = "default",
    ) -> Any:
        hit, value = self.get(cache_type, key, category)
        if hit:
            return value
        try:
            value = await loader()
        except Exception:
            self._track(cache_type, category, "errors", time.perf_counter())
            raise
        self.set(cache_type, key, value, category)
        return value

    # ---------- stats ----------
    def stats(self, cache_type: Optional[str] = None) -> Dict[str, Dict[str, Dict[str, Any]]]:
        types = [cache_type] if cache_type else list(self._stats)
        out: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for t in types:
            by_category = self._stats.get(t, {OVERALL: CacheCounters()})
            out[t] = {cat: c.to_dict() for cat, c in by_category.items()}
        return out

    def hit_rate(self, cache_type: str, category: Optional[str] = None) -> float:
        by_category = self._stats.get(cache_type)
        if not by_category:
            return 0.0
        counters = by_category.get(category or OVERALL)
        return counters.hit_rate if counters else 0.0

    def snapshot(self) -> list:
        """One document per cache type, ready for the cache_stats collection."""
        now = datetime.now(timezone.utc)
        return [
            {"timestamp": now, "cache_type": t, "stats": cats}
            for t, cats in self.stats().items()
        ]

    def reset(self) -> None:
        self._stats.clear()
        logger.info("Cache statistics reset")

    def clear(self) -> None:
        self._entries.clear()
