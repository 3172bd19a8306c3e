"""
Post-commit hooks: side effects that run only after the store write has
succeeded. Each hook is isolated, so a failing index write does not stop
a cache invalidation and neither can undo the write.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PostCommitHook:
    name: str
    run: Callable[[], Awaitable[None]]


async def _run_one(operation: str, hook: PostCommitHook, timeout: float) -> bool:
    start = time.perf_counter()
    try:
        await asyncio.wait_for(hook.run(), timeout=timeout)
    except Exception as e:
        logger.warning(
            "post_commit_hook_failed",
            operation=operation,
            hook=hook.name,
            error=str(e) or type(e).__name__,
            duration_ms=f"{(time.perf_counter() - start) * 1000:.2f}",
        )
        return False
    logger.debug("post_commit_hook_done", operation=operation, hook=hook.name)
    return True


async def run_post_commit(operation: str, hooks: Iterable[PostCommitHook], timeout: float) -> List[bool]:
    """Run every hook concurrently; returns which ones succeeded, never raises"""
    return list(await asyncio.gather(*(_run_one(operation, hook, timeout) for hook in hooks)))
