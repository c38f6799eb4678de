"""
In-Memory Response Cache.

Holds fully prepared audio responses keyed by the exact requested text.
Keys are not normalized: "hello", "Hello" and "hello " are three entries.

By default the cache is unbounded and entries never expire, which is the
intended behavior for a fixed vocabulary list. Both limits can be turned
on for deployments that accept arbitrary text:
    - max_items > 0: least recently used entries are evicted past the cap
    - ttl_seconds > 0: entries older than the TTL are dropped on access,
      and every sweep_every stores the whole cache is swept for them

The cache lives as long as the process. On a serverless cold start it is
empty again.

Example:
    >>> cache = ResponseCache()
    >>> cache.set("မင်္ဂလာပါ", ProxyResponse.audio(b"\\x01\\x02\\x03"))
    >>> entry = cache.get("မင်္ဂလာပါ")
"""
from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional

from tts_proxy.core.config import Defaults
from tts_proxy.core.logging import debug, get_logger, verbose
from tts_proxy.proxy.response import ProxyResponse

_LOG = get_logger("tts-proxy.cache")


@dataclass
class CacheEntry:
    """
    A cached response.

    Attributes:
        response: The prepared response, stored exactly as first returned.
        created_at: Unix timestamp when the entry was stored.
    """
    response: ProxyResponse
    created_at: float = field(default_factory=time.time)


class ResponseCache:
    """
    Thread-safe text -> response mapping with optional LRU cap and TTL.

    All public methods take a single lock, so the cache can be shared by
    the event loop and worker threads alike.

    Attributes:
        max_items: Maximum entries to keep (0 = unbounded).
        ttl_seconds: Entry lifetime in seconds (0 = no expiry).
        sweep_every: Stores between full expiry sweeps (0 = never sweep).
    """

    def __init__(
        self,
        max_items: int = Defaults.CACHE_MAX_ITEMS,
        ttl_seconds: int = Defaults.CACHE_TTL_SECONDS,
        sweep_every: int = 64,
    ):
        self.max_items = int(max_items)
        self.ttl_seconds = int(ttl_seconds)
        self.sweep_every = int(sweep_every)

        self._d: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._evictions = 0
        self._stores = 0

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return self.ttl_seconds > 0 and now - entry.created_at > self.ttl_seconds

    def get(self, key: str) -> Optional[ProxyResponse]:
        """
        Look up the response stored for an exact text.

        Returns:
            The stored ProxyResponse, or None on a miss or expired entry.
        """
        with self._lock:
            entry = self._d.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._expired(entry, time.time()):
                del self._d[key]
                self._expirations += 1
                self._misses += 1
                verbose(_LOG, "expired", key=key[:16], age=round(time.time() - entry.created_at, 1))
                return None

            self._d.move_to_end(key)
            self._hits += 1
            return entry.response

    def set(self, key: str, response: ProxyResponse) -> None:
        """
        Store a response under a text key.

        A second store for the same key replaces the first (last write
        wins). When max_items is set, the least recently used entries
        are evicted. With a TTL, every sweep_every-th store also drops
        expired entries that nobody has looked up since.
        """
        swept = 0
        with self._lock:
            self._d[key] = CacheEntry(response=response)
            self._d.move_to_end(key)

            self._stores += 1
            if self.sweep_every > 0 and self._stores % self.sweep_every == 0:
                swept = self._purge_expired_locked(time.time())

            if self.max_items > 0:
                while len(self._d) > self.max_items:
                    evicted, _ = self._d.popitem(last=False)
                    self._evictions += 1
                    debug(_LOG, "evicted", key=evicted[:16])

        if swept:
            verbose(_LOG, "cleanup", removed=swept)

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        with self._lock:
            return self._d.pop(key, None) is not None

    def clear(self) -> int:
        """Remove every entry and return how many there were."""
        with self._lock:
            count = len(self._d)
            self._d.clear()
            return count

    def cleanup_expired(self) -> int:
        """
        Drop all expired entries.

        Returns:
            Number of entries removed (always 0 when TTL is disabled).
        """
        with self._lock:
            removed = self._purge_expired_locked(time.time())

        if removed:
            verbose(_LOG, "cleanup", removed=removed)
        return removed

    def _purge_expired_locked(self, now: float) -> int:
        # Caller holds self._lock.
        if self.ttl_seconds <= 0:
            return 0
        expired = [k for k, e in self._d.items() if self._expired(e, now)]
        for k in expired:
            del self._d[k]
        self._expirations += len(expired)
        return len(expired)

    def stats(self) -> Dict[str, int]:
        """
        Cache statistics.

        Returns:
            Dictionary with hits, misses, size, max_items, ttl_seconds,
            expirations and evictions.
        """
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._d),
                "max_items": self.max_items,
                "ttl_seconds": self.ttl_seconds,
                "expirations": self._expirations,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)

    def __contains__(self, key: str) -> bool:
        """Key presence, ignoring TTL. Use get() for a TTL-aware lookup."""
        with self._lock:
            return key in self._d
