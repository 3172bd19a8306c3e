import redis.asyncio as redis
from typing import List, Optional
from catalog.errors import CacheUnavailableError
import structlog
import ssl as ssl_module

logger = structlog.get_logger(__name__)


class RedisClient:
    """
    Redis-backed cache store with graceful degradation.

    The connection pool is kept even if Redis is down at startup; redis.asyncio
    reconnects lazily, so the cache comes back once the server does. Every
    failed call raises CacheUnavailableError and callers decide whether a cache
    failure matters (it never does for catalog reads).
    """

    def __init__(self, url: str, timeout: int = 5, use_ssl: bool = False):
        self.url = url
        self.timeout = timeout
        self.use_ssl = use_ssl
        self.redis: Optional[redis.Redis] = None
        self._is_available = False

    async def connect(self):
        """Initialize Redis connection - gracefully handles failures"""
        connection_kwargs = {
            "encoding": "utf-8",
            "decode_responses": True,
            "socket_timeout": self.timeout,
            "socket_connect_timeout": self.timeout,
        }

        if self.use_ssl:
            ssl_context = ssl_module.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl_module.CERT_NONE
            connection_kwargs["ssl"] = ssl_context

        self.redis = redis.from_url(self.url, **connection_kwargs)

        try:
            await self.redis.ping()
            self._is_available = True
            logger.info("redis_connected")

        except Exception as e:
            self._is_available = False
            logger.warning(
                "redis_connection_failed_continuing_without_cache",
                error=str(e),
                message="Application will run without caching until Redis answers"
            )

    async def disconnect(self):
        """Close Redis connection"""
        if self.redis:
            try:
                await self.redis.aclose()
                logger.info("redis_disconnected")
            except Exception as e:
                logger.warning("redis_disconnect_error", error=str(e))
        self.redis = None
        self._is_available = False

    def is_available(self) -> bool:
        """Whether the last call to Redis succeeded"""
        return self._is_available

    def _client(self, operation: str) -> redis.Redis:
        if self.redis is None:
            raise CacheUnavailableError(f"redis not connected for {operation}")
        return self.redis

    def _succeeded(self) -> None:
        if not self._is_available:
            logger.info("redis_recovered")
        self._is_available = True

    def _failed(self, event: str, error: Exception, **context) -> CacheUnavailableError:
        self._is_available = False
        logger.warning(event, error=str(error), **context)
        return CacheUnavailableError(str(error))

    async def ping(self) -> bool:
        client = self._client("ping")
        try:
            result = bool(await client.ping())
        except Exception as e:
            raise self._failed("redis_ping_failed", e) from e
        self._succeeded()
        return result

    async def get(self, key: str) -> Optional[str]:
        client = self._client("get")
        try:
            value = await client.get(key)
        except Exception as e:
            raise self._failed("redis_get_failed", e, key=key) from e
        self._succeeded()
        return value

    async def set_with_ttl(self, key: str, ttl: int, value: str) -> None:
        client = self._client("setex")
        try:
            await client.setex(key, ttl, value)
        except Exception as e:
            raise self._failed("redis_set_failed", e, key=key) from e
        self._succeeded()

    async def add_to_set(self, set_name: str, member: str) -> None:
        """Register a key under a tag. Tags carry no TTL of their own."""
        client = self._client("sadd")
        try:
            await client.sadd(set_name, member)
        except Exception as e:
            raise self._failed("redis_sadd_failed", e, tag=set_name, key=member) from e
        self._succeeded()

    async def get_set_members(self, set_name: str) -> List[str]:
        client = self._client("smembers")
        try:
            members = await client.smembers(set_name)
        except Exception as e:
            raise self._failed("redis_smembers_failed", e, tag=set_name) from e
        self._succeeded()
        return sorted(members)

    async def delete_keys(self, *keys: str) -> int:
        if not keys:
            return 0
        client = self._client("delete")
        try:
            deleted = await client.delete(*keys)
        except Exception as e:
            raise self._failed("redis_delete_failed", e, keys=len(keys)) from e
        self._succeeded()
        return deleted
