import functools
import logging
import asyncpg
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
from catalog.config import settings
from catalog.errors import PersistenceError

logger = structlog.get_logger(__name__)

TRANSIENT_ERRORS = (
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.ConnectionFailureError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.InternalServerError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.SerializationError,
)

DATABASE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def db_retry(
    *,
    stop_after: int = settings.db_retry_attempts,
    wait_multiplier: float = settings.db_retry_wait_multiplier,
    max_wait: float = settings.db_retry_max_wait,
):
    return retry(
        stop=stop_after_attempt(stop_after),
        wait=wait_exponential(multiplier=wait_multiplier, max=max_wait),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def persistence_errors(func):
    """Re-raise database errors left after retrying as PersistenceError"""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DATABASE_ERRORS as e:
            logger.error(
                "database_operation_failed",
                operation=func.__name__,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PersistenceError(f"{func.__name__} failed: {e}") from e
    return wrapper
