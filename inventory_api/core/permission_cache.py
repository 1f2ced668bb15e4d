"""
In-process permission cache

Holds each user's resolved permission set for a bounded TTL on a
``cachetools.TTLCache``. Entries are immutable and replaced whole, so a
reader never sees a partially written entry. A grant revoked without an
invalidation may be honoured for at most one TTL.

Every invalidation bumps a generation counter. A resolution that started
before an invalidation carries the old generation and is not written back,
so an explicit invalidation is never masked by an in-flight lookup.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Optional

import structlog
from cachetools import TTLCache

logger = structlog.get_logger()


class PermissionCache:
    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = 10000,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)
        self._lock = threading.Lock()
        self._generation = 0
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def generation(self) -> int:
        """Read before resolving; pass to ``put`` to drop results an invalidation overtook"""
        with self._lock:
            return self._generation

    def get(self, user_id: int) -> Optional[frozenset[str]]:
        """Cached permissions, or None when missing or older than the TTL"""
        with self._lock:
            permissions = self._entries.get(user_id)
            if permissions is None:
                self._misses += 1
            else:
                self._hits += 1
            return permissions

    def put(self, user_id: int, permissions: Iterable[str], generation: Optional[int] = None) -> frozenset[str]:
        """
        Store a resolved set and return it

        With ``generation`` the write is skipped when an invalidation happened
        since that generation was read; the set is still returned to the caller.
        """
        permissions = frozenset(permissions)
        with self._lock:
            if generation is not None and generation != self._generation:
                stale = True
            else:
                stale = False
                self._entries[user_id] = permissions
        if stale:
            logger.debug("Stale permission resolution not cached", user_id=user_id, generation=generation)
        return permissions

    def invalidate(self, user_id: int) -> None:
        with self._lock:
            self._generation += 1
            removed = self._entries.pop(user_id, None)
        logger.debug("Permission cache invalidated", user_id=user_id, had_entry=removed is not None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._generation += 1
            count = len(self._entries)
            self._entries.clear()
        logger.info("Permission cache cleared", entries=count)

    def stats(self) -> dict:
        with self._lock:
            self._entries.expire()
            return {
                "entries": len(self._entries),
                "maxsize": self._entries.maxsize,
                "hits": self._hits,
                "misses": self._misses,
                "generation": self._generation,
                "ttl_seconds": self._ttl,
            }
