import asyncpg
import structlog
import ssl
from typing import Optional
from catalog.config import Settings

logger = structlog.get_logger(__name__)


class DatabasePoolManager:

    def __init__(self, settings: Settings):
        self.settings = settings
        self.write_pool: Optional[asyncpg.Pool] = None

    def _create_ssl_context(self) -> Optional[ssl.SSLContext]:
        if self.settings.db_ssl_mode != "require":
            return None

        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        return ssl_context

    async def init_pools(self) -> asyncpg.Pool:
        settings = self.settings
        try:
            self.write_pool = await asyncpg.create_pool(
                dsn=settings.database_url,
                min_size=settings.db_pool_min_size,
                max_size=settings.db_pool_max_size,
                max_queries=settings.db_pool_max_queries,
                max_inactive_connection_lifetime=settings.db_pool_max_inactive,
                command_timeout=settings.db_command_timeout,
                server_settings={
                    'application_name': f'{settings.project_name}_write',
                    'tcp_keepalives_idle': '600',
                    'tcp_keepalives_interval': '30',
                    'tcp_keepalives_count': '3',
                },
                ssl=self._create_ssl_context(),
                init=self._init_connection
            )

            logger.info("database_pool_initialized", pool_size=self.write_pool.get_size())
            return self.write_pool

        except Exception as e:
            logger.error("database_pool_init_failed", error=str(e), exc_info=True)
            raise

    async def _init_connection(self, conn: asyncpg.Connection):
        await conn.execute("SET timezone TO 'UTC'")
        await conn.execute(f"SET statement_timeout TO '{self.settings.db_timeout}s'")

    async def close_pools(self):
        if self.write_pool:
            await self.write_pool.close()
            self.write_pool = None
        logger.info("database_pool_closed")
