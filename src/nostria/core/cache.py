"""
Generic in-memory key/value cache with per-entry expiry.

One implementation backs every cache in the gateway: the resolver's profile
cache and the HTTP boundary's event, profile-response and article caches.
Only the TTL policy differs between them.

An entry is visible only while ``now < expires_at``. Reading an expired
entry returns ``None`` and removes it in the same call, so a stale value is
never observable. Entries nobody reads again are removed by
[sweep()][nostria.core.cache.TTLCache.sweep], which the gateway calls
periodically. There is no size-based eviction: memory is bounded by the
sweep interval and key-space cardinality.

All operations are synchronous, so on a single asyncio event loop each one
is atomic. Concurrent ``set`` calls on the same key are last-writer-wins.

Examples:
    ```python
    cache: TTLCache[ProfileRecord] = TTLCache(default_ttl=60.0, name="profile")
    cache.set(pubkey, record)
    cache.get(pubkey)      # record, until 60 s have elapsed
    cache.sweep()          # -> number of expired entries removed
    ```
"""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from typing import Generic, NamedTuple, TypeVar

from .metrics import CACHE_LOOKUPS_TOTAL


V = TypeVar("V")


class CacheEntry(NamedTuple, Generic[V]):
    """A cached value and the clock reading at which it stops being visible."""

    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Key/value store with per-entry time-to-live.

    Args:
        default_ttl: TTL in seconds used when ``set()`` is called without one.
        name: Label used for the ``cache_lookups_total`` metric.
        clock: Monotonic clock returning seconds. Injectable for tests.

    Raises:
        ValueError: If ``default_ttl`` is not positive.
    """

    def __init__(
        self,
        default_ttl: float,
        *,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError(f"default_ttl must be positive, got {default_ttl}")
        self._default_ttl = default_ttl
        self._name = name
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[V]] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def set(self, key: Hashable, value: V, ttl: float | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default TTL if None)."""
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._entries[key] = CacheEntry(value, self._clock() + ttl)

    def get(self, key: Hashable) -> V | None:
        """Return the live value for ``key``, or ``None``.

        An expired entry is deleted before returning ``None``.
        """
        entry = self._entries.get(key)
        if entry is None:
            CACHE_LOOKUPS_TOTAL.labels(cache=self._name, result="miss").inc()
            return None
        if self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            CACHE_LOOKUPS_TOTAL.labels(cache=self._name, result="miss").inc()
            return None
        CACHE_LOOKUPS_TOTAL.labels(cache=self._name, result="hit").inc()
        return entry.value

    def delete(self, key: Hashable) -> None:
        """Remove ``key`` if present."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def sweep(self) -> int:
        """Remove every entry with ``expires_at <= now``.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        """Number of stored entries, including expired ones not yet purged."""
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and self._clock() < entry.expires_at

    def __repr__(self) -> str:
        return f"TTLCache(name={self._name}, entries={len(self._entries)}, ttl={self._default_ttl})"
