"""Short-lived download link cache.

Features:
- Opaque uuid4 identifiers, never reused
- TTL-based expiration (default 60s)
- Expired records are dropped lazily on lookup and purged on every insert
- Size cap so memory stays bounded when links are created but never used
- Thread-safe for concurrent access
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from zipstreamer.models.entry import ArchiveRequest


@dataclass(frozen=True)
class CacheEntry:
    """A cached archive request with its lifetime."""
    key: str
    value: ArchiveRequest
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class LinkCache:
    """In-memory mapping from link id to archive request."""

    def __init__(
        self,
        ttl: float = 60.0,
        max_size: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        # Insertion order equals expiry order because the TTL is fixed.
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._lock = threading.RLock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0, "expired": 0}

    @property
    def ttl(self) -> float:
        return self._ttl

    def set(self, request: ArchiveRequest) -> str:
        """Store a request and return its new link id."""
        with self._lock:
            now = self._clock()
            self._purge_expired(now)

            while len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
                self._stats["evictions"] += 1

            link_id = str(uuid.uuid4())
            self._cache[link_id] = CacheEntry(
                key=link_id,
                value=request,
                created_at=now,
                expires_at=now + self._ttl,
            )
            return link_id

    def get(self, link_id: str) -> ArchiveRequest | None:
        """Get a request, returns None if not found or expired."""
        with self._lock:
            entry = self._cache.get(link_id)
            if entry is None:
                self._stats["misses"] += 1
                return None

            if entry.is_expired(self._clock()):
                del self._cache[link_id]
                self._stats["expired"] += 1
                self._stats["misses"] += 1
                return None

            self._stats["hits"] += 1
            return entry.value

    def cleanup_expired(self) -> int:
        """Remove all expired entries."""
        with self._lock:
            now = self._clock()
            keys_to_delete = [k for k, v in self._cache.items() if v.is_expired(now)]
            for key in keys_to_delete:
                del self._cache[key]
            self._stats["expired"] += len(keys_to_delete)
            return len(keys_to_delete)

    def _purge_expired(self, now: float) -> None:
        while self._cache:
            oldest = next(iter(self._cache.values()))
            if not oldest.is_expired(now):
                break
            self._cache.popitem(last=False)
            self._stats["expired"] += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics."""
        with self._lock:
            return {
                **self._stats,
                "size": len(self._cache),
                "max_size": self._max_size,
            }
