"""
TTL caches for catalog listings.

Entries go stale once `now - inserted_at >= ttl`. Stale entries read as a
miss and stay in memory until overwritten, `purge_expired()` is called, or
the optional `maxsize` bound pushes them out (least recently used first).
"""
from __future__ import annotations
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

log = logging.getLogger("beatanimes.cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Miss:
    __slots__ = ()

    def __repr__(self):
        return "MISS"

    def __bool__(self):
        return False


MISS = _Miss()


@dataclass
class CacheEntry(Generic[V]):
    value: V
    inserted_at: int                  # epoch seconds


def _retrieve(task: asyncio.Future) -> None:
    # Mark retrieved so a failure nobody awaited is not reported at GC.
    if not task.cancelled():
        task.exception()


class TTLCache(Generic[K, V]):
    def __init__(
        self,
        ttl: float,
        *,
        name: str = "cache",
        maxsize: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if maxsize is not None and maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.ttl = ttl
        self.name = name
        self.maxsize = maxsize
        self.clock = clock
        self._entries: "OrderedDict[K, CacheEntry[V]]" = OrderedDict()
        self._inflight: Dict[K, asyncio.Future] = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry, self.clock())

    def _expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.inserted_at >= self.ttl

    def get(self, key: K):
        """Fresh value for `key`, or `MISS`."""
        entry = self._entries.get(key)
        if entry is None or self._expired(entry, self.clock()):
            return MISS
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: K, value: V) -> None:
        self._entries[key] = CacheEntry(value=value, inserted_at=int(self.clock()))
        self._entries.move_to_end(key)
        if self.maxsize is not None:
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def purge_expired(self) -> int:
        now = self.clock()
        stale = [k for k, e in self._entries.items() if self._expired(e, now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_load(self, key: K, loader: Callable[[], Awaitable[V]]) -> V:
        """
        Cached value, or the result of `loader()`.

        Concurrent misses on one key share a single `loader()` call. Failures
        are not cached; every waiter gets the exception.
        """
        value = self.get(key)
        if value is not MISS:
            return value

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader))
            task.add_done_callback(_retrieve)
            self._inflight[key] = task
        else:
            log.debug(f"[{self.name}] joining in-flight load for {key!r}")
        # A cancelled caller leaves the load running for the others.
        return await asyncio.shield(task)

    async def _load(self, key: K, loader: Callable[[], Awaitable[V]]) -> V:
        try:
            value = await loader()
            self.set(key, value)
            return value
        finally:
            self._inflight.pop(key, None)


# ──────────────────────────────
#  Catalog namespaces
# ──────────────────────────────
NAMESPACES = ("search", "anime", "recent", "popular", "upcoming")

DEFAULT_TTLS = {
    "search": 10 * 60,
    "anime": 60 * 60,
    "recent": 5 * 60,
    "popular": 10 * 60,
    "upcoming": 60 * 60,
}


class CatalogCaches:
    """One TTLCache per catalog namespace, each with its own TTL."""

    def __init__(
        self,
        ttls: Optional[Dict[str, float]] = None,
        *,
        maxsize: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        merged = dict(DEFAULT_TTLS)
        merged.update(ttls or {})
        unknown = set(merged) - set(NAMESPACES)
        if unknown:
            raise ValueError(f"unknown cache namespace(s): {', '.join(sorted(unknown))}")
        self._caches = {
            ns: TTLCache(merged[ns], name=ns, maxsize=maxsize, clock=clock)
            for ns in NAMESPACES
        }

    def __getitem__(self, namespace: str) -> TTLCache:
        try:
            return self._caches[namespace]
        except KeyError:
            raise KeyError(f"unknown cache namespace: {namespace}") from None

    def purge_expired(self) -> int:
        return sum(c.purge_expired() for c in self._caches.values())
