"""In-memory key/value cache with TTLs, tag invalidation and LRU eviction."""

from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from distrocache.metrics import Counter, Gauge, Histogram, Registry

_OWNED_PREFIXES = ("0", "1", "2", "3")


def _timestamp(seconds: float) -> str:
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


def _trim(value: float) -> str:
    return f"{value:.9f}".rstrip("0").rstrip(".")


def _format_duration(seconds: float) -> str:
    ns = round(seconds * 1_000_000_000)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_trim(ns / 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_trim(ns / 1_000_000)}ms"
    hours, rest = divmod(ns, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    secs = _trim(rest / 1_000_000_000)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


@dataclass
class CacheItem:
    """A cached value and its bookkeeping. Times are epoch seconds, TTL in seconds."""

    key: str
    value: Any
    ttl: float
    created_at: float
    accessed_at: float
    access_count: int = 1
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.ttl == 0:
            return False
        if now is None:
            now = time.time()
        return now - self.created_at > self.ttl

    def to_dict(self) -> dict[str, Any]:
        """JSON form: TTL in nanoseconds, times as RFC 3339 strings."""
        data: dict[str, Any] = {
            "key": self.key,
            "value": self.value,
            "ttl": round(self.ttl * 1_000_000_000),
            "created_at": _timestamp(self.created_at),
            "accessed_at": _timestamp(self.accessed_at),
            "access_count": self.access_count,
        }
        if self.tags:
            data["tags"] = list(self.tags)
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass
class CacheConfig:
    max_size: int = 10000
    default_ttl: float = 300.0
    cleanup_interval: float = 60.0
    port: int = 8080
    node_id: str = "node-1"
    replication_factor: int = 2


@dataclass
class CacheStats:
    hits: Counter
    misses: Counter
    sets: Counter
    deletes: Counter
    evictions: Counter
    total_items: Gauge
    memory_usage: Gauge
    access_time: Histogram

    @staticmethod
    def create(registry: Registry) -> "CacheStats":
        """Build the cache metrics and register them with ``registry``."""
        stats = CacheStats(
            hits=Counter("distrocache_hits_total", "Total number of cache hits"),
            misses=Counter("distrocache_misses_total", "Total number of cache misses"),
            sets=Counter("distrocache_sets_total", "Total number of cache sets"),
            deletes=Counter("distrocache_deletes_total", "Total number of cache deletes"),
            evictions=Counter(
                "distrocache_evictions_total", "Total number of cache evictions"
            ),
            total_items=Gauge("distrocache_items_total", "Total number of items in cache"),
            memory_usage=Gauge("distrocache_memory_bytes", "Memory usage in bytes"),
            access_time=Histogram(
                "distrocache_access_duration_seconds", "Cache access duration in seconds"
            ),
        )
        registry.register(
            stats.hits,
            stats.misses,
            stats.sets,
            stats.deletes,
            stats.evictions,
            stats.total_items,
            stats.memory_usage,
            stats.access_time,
        )
        return stats


class DistroCache:
    """A thread-safe cache node."""

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        registry: Optional[Registry] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config if config is not None else CacheConfig()
        self.registry = registry if registry is not None else Registry()
        self.stats = CacheStats.create(self.registry)
        self._clock = clock
        self._started = clock()
        self._data: dict[str, CacheItem] = {}
        self._tag_index: dict[str, list[str]] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._cleaner: Optional[threading.Thread] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __enter__(self) -> "DistroCache":
        self.start_cleanup()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop_cleanup()

    def hash_key(self, key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def should_own_key(self, key: str) -> bool:
        return self.hash_key(key).startswith(_OWNED_PREFIXES)

    def get(self, key: str) -> Optional[CacheItem]:
        """Return the live item for ``key`` and record the access, or None."""
        start = time.perf_counter()
        try:
            with self._lock:
                item = self._data.get(key)
                if item is None:
                    self.stats.misses.inc()
                    return None
                now = self._clock()
                if item.is_expired(now):
                    self.stats.misses.inc()
                    self.delete(key)
                    return None
                item.accessed_at = now
                item.access_count += 1
                self.stats.hits.inc()
                return item
        finally:
            self.stats.access_time.observe(time.perf_counter() - start)

    def set(
        self,
        key: str,
        value: Any,
        ttl: float,
        tags: Optional[Iterable[str]] = None,
    ) -> CacheItem:
        tag_list = list(tags) if tags else []
        with self._lock:
            if len(self._data) >= self.config.max_size:
                self._evict_lru()
            old = self._data.get(key)
            if old is not None:
                self._remove_from_tag_index(key, old.tags)
            now = self._clock()
            item = CacheItem(
                key=key,
                value=value,
                ttl=ttl,
                created_at=now,
                accessed_at=now,
                access_count=1,
                tags=tag_list,
            )
            self._data[key] = item
            for tag in tag_list:
                self._tag_index.setdefault(tag, []).append(key)
            self.stats.sets.inc()
            self.stats.total_items.set(len(self._data))
            return item

    def delete(self, key: str) -> bool:
        with self._lock:
            item = self._data.pop(key, None)
            if item is None:
                return False
            self._remove_from_tag_index(key, item.tags)
            self.stats.deletes.inc()
            self.stats.total_items.set(len(self._data))
            return True

    def invalidate_by_tag(self, tag: str) -> int:
        """Remove every item carrying ``tag``; return how many were removed."""
        with self._lock:
            keys = self._tag_index.get(tag)
            if keys is None:
                return 0
            deleted = 0
            for key in list(keys):
                item = self._data.pop(key, None)
                if item is not None:
                    self._remove_from_tag_index(key, item.tags)
                    deleted += 1
            self._tag_index.pop(tag, None)
            self.stats.total_items.set(len(self._data))
            return deleted

    def cleanup(self) -> int:
        """Drop expired items; return how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [key for key, item in self._data.items() if item.is_expired(now)]
            for key in expired:
                item = self._data.pop(key)
                self._remove_from_tag_index(key, item.tags)
            self.stats.total_items.set(len(self._data))
            return len(expired)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "total_items": len(self._data),
                "total_tags": len(self._tag_index),
                "node_id": self.config.node_id,
                "uptime": _format_duration(self._clock() - self._started),
            }

    def start_cleanup(self) -> None:
        """Run ``cleanup`` every ``config.cleanup_interval`` seconds in the background."""
        if self._cleaner is not None and self._cleaner.is_alive():
            return
        self._stop.clear()
        self._cleaner = threading.Thread(
            target=self._cleanup_loop, name="distrocache-cleanup", daemon=True
        )
        self._cleaner.start()

    def stop_cleanup(self) -> None:
        self._stop.set()
        if self._cleaner is not None:
            self._cleaner.join()
            self._cleaner = None

    def _cleanup_loop(self) -> None:
        while not self._stop.wait(self.config.cleanup_interval):
            self.cleanup()

    def _remove_from_tag_index(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            if key in keys:
                keys.remove(key)
            if not keys:
                del self._tag_index[tag]

    def _evict_lru(self) -> None:
        if not self._data:
            return
        oldest = min(self._data.values(), key=lambda item: item.accessed_at)
        del self._data[oldest.key]
        self._remove_from_tag_index(oldest.key, oldest.tags)
        self.stats.evictions.inc()