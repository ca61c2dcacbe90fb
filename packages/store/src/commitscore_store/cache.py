"""Ephemeral, TTL-bounded caches.

A cache is a secondary guard in front of the model: it remembers recent
results for a short window so that repeated requests skip the expensive call
even before the durable store has been consulted by another worker. It is
injected explicitly; nothing here is a process-wide singleton.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600.0


@dataclass
class CacheEntry:
    key: str
    value: Any
    expiry: float  # clock() value after which the entry is stale

    def expired(self, now: float) -> bool:
        return now >= self.expiry


class BaseCache(ABC):
    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss or an expired entry."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value for ttl seconds (the cache default when None)."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""


class MemoryCache(BaseCache):
    """In-process cache with per-entry expiry.

    clock is injectable so tests can move time forward without sleeping.
    When max_entries is set, inserting into a full cache first drops expired
    entries and then the entry closest to expiry.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for e in self._entries.values() if not e.expired(now))

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            if self.max_entries is not None and key not in self._entries:
                self._evict(now)
            self._entries[key] = CacheEntry(key=key, value=value, expiry=now + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def _evict(self, now: float) -> None:
        for key in [k for k, e in self._entries.items() if e.expired(now)]:
            del self._entries[key]
        while self._entries and len(self._entries) >= self.max_entries:
            soonest = min(self._entries.values(), key=lambda e: e.expiry)
            logger.debug("Cache full, evicting %s", soonest.key)
            del self._entries[soonest.key]


class NullCache(BaseCache):
    """Disables the secondary guard: every lookup misses."""

    def get(self, key: str) -> Any | None:
        return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        pass

    def delete(self, key: str) -> None:
        pass
