from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import structlog

from catalog.config import Settings, settings as default_settings
from catalog.cache.invalidator import CacheInvalidator
from catalog.cache.memory_cache import MemoryCacheStore
from catalog.cache.redis_client import RedisClient
from catalog.database.connection import DatabasePoolManager
from catalog.database.repository import CatalogRepository
from catalog.middleware.cors import setup_cors
from catalog.middleware.logging import LoggingMiddleware, configure_logging
from catalog.routers import products
from catalog.search.elasticsearch_client import SearchIndexClient
from catalog.services.catalog_service import CatalogService

logger = structlog.get_logger(__name__)


def build_cache(settings: Settings):
    if settings.cache_backend == "memory":
        return MemoryCacheStore(max_size=settings.memory_cache_max_size)
    return RedisClient(settings.redis_url, timeout=settings.redis_timeout, use_ssl=settings.redis_ssl)


def build_service(settings: Settings, repository, cache, search) -> CatalogService:
    return CatalogService(
        repository,
        cache,
        CacheInvalidator(cache),
        search,
        product_ttl=settings.product_cache_ttl,
        suggestion_ttl=settings.suggestion_cache_ttl,
        timeout=settings.dependency_timeout,
        cache_search_fallback=settings.cache_search_fallback,
    )


def create_app(settings: Settings = default_settings) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager
        Postgres is required; Redis and Elasticsearch are optional at startup.
        """
        configure_logging(settings.log_level)
        logger.info("application_startup_begin")

        pool_manager = DatabasePoolManager(settings)
        try:
            pool = await pool_manager.init_pools()
        except Exception as e:
            logger.critical("application_startup_failed", error=str(e), exc_info=True)
            raise

        cache = build_cache(settings)
        if isinstance(cache, RedisClient):
            await cache.connect()

        search = SearchIndexClient.from_url(
            settings.elasticsearch_url,
            timeout=settings.search_timeout,
            index_name=settings.elasticsearch_index,
            default_size=settings.search_default_size,
        )
        repository = CatalogRepository(pool)
        await search.initialize_elasticsearch(repository, batch_size=settings.search_bootstrap_batch_size)

        app.state.catalog_service = build_service(settings, repository, cache, search)
        logger.info("application_startup_complete", cache_backend=settings.cache_backend)

        yield

        logger.info("application_shutdown_begin")
        try:
            await search.close()
            if isinstance(cache, RedisClient):
                await cache.disconnect()
            await pool_manager.close_pools()
            logger.info("application_shutdown_complete")
        except Exception as e:
            logger.error("application_shutdown_error", error=str(e), exc_info=True)

    app = FastAPI(
        title=settings.project_name,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None
    )

    @app.exception_handler(500)
    async def internal_server_error_handler(request: Request, exc):
        """Handle unexpected server errors"""
        logger.error(
            "internal_server_error",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    setup_cors(app, settings.allowed_origins)
    app.add_middleware(LoggingMiddleware)
    app.include_router(products.router, prefix=settings.api_v1_prefix)

    @app.get("/health")
    async def health():
        """Basic health check (public)"""
        return {"status": "healthy"}

    return app


app = create_app()
