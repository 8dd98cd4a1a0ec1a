"""caching utilities: a thread-safe ttl cache with fifo eviction for explorer lookups."""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    """cached value plus the moment it was stored and how long it lives"""
    value: Any
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class TTLCache:
    """bounded key/value store with per-entry expiry.

    eviction is by insertion order (fifo), not recency: reads never reorder
    entries. expired entries are dropped lazily on read; clean_expired() is an
    optional sweep. when disabled, reads miss and writes are ignored.
    """

    def __init__(
        self,
        enabled: bool = True,
        default_ttl: float = 900,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.enabled = enabled
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """return the live value for key, or none"""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """store value; at capacity the earliest-inserted entry is evicted first"""
        if not self.enabled:
            return
        entry = CacheEntry(
            value=value,
            timestamp=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        with self._lock:
            if key in self._entries:
                # refresh in place, insertion position is kept
                self._entries[key] = entry
                return
            if len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = entry

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """drop all entries, even when the cache is disabled"""
        with self._lock:
            self._entries.clear()

    def clean_expired(self) -> int:
        """remove every expired entry and return how many were removed"""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            size = len(self._entries)
        return {
            "size": size,
            "enabled": self.enabled,
            "ttl": self.default_ttl,
            "max_size": self.max_size,
        }

    @classmethod
    def from_config(cls, cfg) -> "TTLCache":
        return cls(enabled=cfg.ENABLE_CACHE, default_ttl=cfg.CACHE_TTL, max_size=cfg.CACHE_MAX_SIZE)


_default_cache: Optional[TTLCache] = None
_default_lock = threading.Lock()


def get_cache() -> TTLCache:
    """process-wide cache built from configuration on first use"""
    global _default_cache
    with _default_lock:
        if _default_cache is None:
            from chainsage.config import get_config
            _default_cache = TTLCache.from_config(get_config())
        return _default_cache
