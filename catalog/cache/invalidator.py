"""
Tag-based cache invalidation - call this after DB changes.
Each tag is a set of cache keys; invalidating it evicts every key it lists.
"""
import structlog

logger = structlog.get_logger(__name__)


class CacheInvalidator:
    """Evicts every key registered under a tag, then the tag itself"""

    def __init__(self, cache):
        self._cache = cache

    async def invalidate(self, tag: str) -> None:
        """
        Best-effort: a cache failure is logged and never reaches the caller.
        An empty or missing tag is a no-op.
        """
        try:
            keys = await self._cache.get_set_members(tag)
            if not keys:
                return
            await self._cache.delete_keys(*keys)
            await self._cache.delete_keys(tag)
            logger.info("cache_invalidated", tag=tag, keys=len(keys))
        except Exception as e:
            logger.warning("cache_invalidation_failed", tag=tag, error=str(e))
