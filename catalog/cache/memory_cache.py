"""In-memory cache store using cachetools.TLRUCache.

Single-process stand-in for Redis, selected with ``cache_backend="memory"``.
Unlike a plain ``TTLCache`` every entry carries its own TTL, so product
reads (300s) and suggestion reads (60s) can share one store. Tags are
plain in-process sets and never expire.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Set, Tuple

import structlog
from cachetools import TLRUCache

logger = structlog.get_logger(__name__)


def _expires_at(key: str, value: Tuple[int, str], now: float) -> float:
    ttl, _ = value
    return now + ttl


class MemoryCacheStore:
    """
    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used one is evicted.
    timer:
        Clock used for expiry; tests pass a fake to step over TTL boundaries.
    """

    def __init__(self, max_size: int = 10_000, timer: Callable[[], float] = time.monotonic) -> None:
        self._entries: TLRUCache = TLRUCache(maxsize=max_size, ttu=_expires_at, timer=timer)
        self._sets: Dict[str, Set[str]] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry[1]

    async def set_with_ttl(self, key: str, ttl: int, value: str) -> None:
        self._entries[key] = (ttl, value)

    async def add_to_set(self, set_name: str, member: str) -> None:
        self._sets.setdefault(set_name, set()).add(member)

    async def get_set_members(self, set_name: str) -> List[str]:
        return sorted(self._sets.get(set_name, ()))

    async def delete_keys(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._sets.pop(key, None) is not None:
                deleted += 1
            elif self._entries.pop(key, None) is not None:
                deleted += 1
        logger.debug("memory_cache_deleted", requested=len(keys), deleted=deleted)
        return deleted
