from __future__ import annotations

import contextvars
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator

"""
Simple in-process TTL cache.

This cache is intentionally lightweight:
- It keeps one entry per dataset key in a plain dict (process lifetime only).
- TTL is chosen per `put`, so vacancy data and static info can use different windows.
- TTL is enforced on read; there is no LRU or explicit eviction.

It is used by ingestion clients (rainfall, carparks) to:
- avoid refetching slowly-changing external datasets on every filter change,
- serve slightly stale data when an upstream is temporarily down.
"""


def now_epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry:
    """One cached payload plus the time it was fetched."""

    key: str
    payload: Any
    fetched_at_epoch_ms: int
    ttl_ms: int

    def is_valid(self, now_ms: int) -> bool:
        return now_ms - self.fetched_at_epoch_ms < self.ttl_ms


@dataclass
class CacheStats:
    """Per-request cache usage stats (best-effort)."""

    hits: int = 0
    misses: int = 0
    expired: int = 0
    sets: int = 0
    stale_reads: int = 0
    stale_fallbacks: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "hits": int(self.hits),
            "misses": int(self.misses),
            "expired": int(self.expired),
            "sets": int(self.sets),
            "stale_reads": int(self.stale_reads),
            "stale_fallbacks": int(self.stale_fallbacks),
        }


_cache_stats_var: contextvars.ContextVar[CacheStats | None] = contextvars.ContextVar(
    "parentmap_cache_stats", default=None
)


def _stats() -> CacheStats | None:
    return _cache_stats_var.get()


@contextmanager
def record_cache_stats() -> Iterator[CacheStats]:
    """Capture cache stats within the current context (thread/task-safe)."""

    stats = CacheStats()
    token = _cache_stats_var.set(stats)
    try:
        yield stats
    finally:
        _cache_stats_var.reset(token)


class TTLCache:
    """A process-local cache keyed by dataset name.

    `None` is reserved to signal a miss, so it cannot be stored as a payload.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        default_ttl_ms: int = 60 * 60 * 1000,
        clock: Callable[[], int] = now_epoch_ms,
    ):
        self._enabled = enabled
        self._default_ttl_ms = int(default_ttl_ms)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _now(self, now_ms: int | None) -> int:
        return int(now_ms) if now_ms is not None else int(self._clock())

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry for `key` (expired or not), without touching stats."""
        if not self._enabled:
            return None
        return self._entries.get(key)

    def get(self, key: str, *, now_ms: int | None = None) -> Any | None:
        """Return the payload if present and not expired; otherwise return None."""
        if not self._enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            st = _stats()
            if st:
                st.misses += 1
            return None

        if not entry.is_valid(self._now(now_ms)):
            st = _stats()
            if st:
                st.misses += 1
                st.expired += 1
            return None

        st = _stats()
        if st:
            st.hits += 1
        return entry.payload

    def get_stale(self, key: str) -> Any | None:
        """Return the payload even if expired; otherwise return None.

        This is useful for "stale-if-error" behavior where an upstream API is down
        and we prefer to serve slightly old data rather than nothing.
        """
        if not self._enabled:
            return None
        entry = self._entries.get(key)
        if entry is None:
            return None
        st = _stats()
        if st:
            st.stale_reads += 1
        return entry.payload

    def put(self, key: str, payload: Any, ttl_ms: int | None = None, now_ms: int | None = None) -> None:
        """Store or overwrite the entry for `key`, stamped with `now_ms`."""
        if not self._enabled:
            return None
        if payload is None:
            raise ValueError("cannot cache a None payload")

        ttl = int(ttl_ms) if ttl_ms is not None else self._default_ttl_ms
        if ttl <= 0:
            raise ValueError("ttl_ms must be > 0")

        # Single dict assignment: readers see either the old entry or the new one.
        self._entries[key] = CacheEntry(
            key=key,
            payload=payload,
            fetched_at_epoch_ms=self._now(now_ms),
            ttl_ms=ttl,
        )
        st = _stats()
        if st:
            st.sets += 1

    def get_or_set(
        self,
        key: str,
        builder: Callable[[], Any],
        ttl_ms: int | None = None,
        *,
        stale_if_error: bool = False,
        stale_predicate: Callable[[Exception], bool] | None = None,
        cacheable: Callable[[Any], bool] | None = None,
    ) -> Any:
        """Return cached payload, or compute/store it via `builder`.

        A freshly built value is stored only when `cacheable(value)` is True (or the
        predicate is None); otherwise it is returned without touching the cache.

        If `stale_if_error` is enabled and `builder()` raises, the cache returns the
        expired payload instead of failing, as long as:
        - a stale payload exists, and
        - `stale_predicate(exc)` is True (or predicate is None).
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        try:
            value = builder()
        except Exception as exc:
            if stale_if_error and (stale_predicate(exc) if stale_predicate else True):
                stale = self.get_stale(key)
                if stale is not None:
                    st = _stats()
                    if st:
                        st.stale_fallbacks += 1
                    return stale
            raise
        else:
            if cacheable is None or cacheable(value):
                self.put(key, value, ttl_ms=ttl_ms)
            return value
