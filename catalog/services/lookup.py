"""
Tiered lookup helpers for catalog reads.

A read walks cache -> search index -> store and stops at the first tier
that answers. The cache and the index are advisory: their failures are
logged here, with timing, and turned into "try the next tier". The store
is authoritative and is called directly, so its errors propagate.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as DecodeError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Degraded:
    """A tier that could not answer"""
    source: str
    operation: str
    error: str


def _elapsed_ms(start: float) -> str:
    return f"{(time.perf_counter() - start) * 1000:.2f}"


async def guarded(
    source: str,
    operation: str,
    call: Callable[[], Awaitable[T]],
    timeout: float,
    **context: Any,
) -> Union[T, Degraded]:
    """Run one advisory call under a timeout; any failure becomes Degraded"""
    start = time.perf_counter()
    try:
        return await asyncio.wait_for(call(), timeout=timeout)
    except asyncio.TimeoutError:
        error = f"timed out after {timeout}s"
    except Exception as e:
        error = str(e) or type(e).__name__

    logger.warning(
        f"{source}_degraded",
        operation=operation,
        error=error,
        duration_ms=_elapsed_ms(start),
        **context,
    )
    return Degraded(source=source, operation=operation, error=error)


async def try_cache(cache, key: str, adapter: TypeAdapter, timeout: float) -> Optional[Any]:
    """Decoded cached value, or None on a miss, an error or an undecodable entry"""
    raw = await guarded("cache", "get", lambda: cache.get(key), timeout, key=key)
    if isinstance(raw, Degraded) or raw is None:
        return None
    try:
        value = adapter.validate_json(raw)
    except DecodeError:
        logger.warning("cache_decode_error", key=key)
        return None
    logger.debug("cache_hit", key=key)
    return value


async def register_key(cache, tag: str, key: str, timeout: float) -> None:
    """Record the key under its tag so a later write can evict it"""
    await guarded("cache", "add_to_set", lambda: cache.add_to_set(tag, key), timeout, tag=tag, key=key)


async def write_cache(cache, key: str, ttl: int, adapter: TypeAdapter, value: Any, timeout: float) -> None:
    payload = adapter.dump_json(value).decode()
    await guarded("cache", "set_with_ttl", lambda: cache.set_with_ttl(key, ttl, payload), timeout, key=key)


async def try_search_index(
    operation: str,
    call: Callable[[], Awaitable[T]],
    timeout: float,
    **context: Any,
) -> Union[T, Degraded]:
    """Index result (an empty list is a real answer) or Degraded"""
    return await guarded("search_index", operation, call, timeout, **context)
