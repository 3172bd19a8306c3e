"""
Catalog read/write orchestrator.

Three independently failing systems sit behind every operation:

- the Postgres repository, which is authoritative. Its errors reach the caller.
- the cache, which is advisory. Reads go through it and writes evict tags.
- the search index, a derived copy used for ranked search and suggestions.

Writes hit the store first. Indexing and tag invalidation then run as
post-commit hooks whose failures are only logged. Reads try the cache,
then the index (search and suggestions only), then the store, and write
the answer back into the cache with the TTL of their operation class.
"""
from typing import Any, Awaitable, Callable, List, Optional

import structlog
from pydantic import TypeAdapter

from catalog.cache.keys import CacheKeys, CacheTags
from catalog.errors import ValidationError
from catalog.schemas.products import (
    Product,
    ProductAdapter,
    ProductCreate,
    ProductList,
    ProductUpdate,
    TitleList,
)
from catalog.services.hooks import PostCommitHook, run_post_commit
from catalog.services.lookup import (
    Degraded,
    guarded,
    register_key,
    try_cache,
    try_search_index,
    write_cache,
)
from catalog.utils.merge import swap_out_blank_fields

logger = structlog.get_logger(__name__)


def _require_id(product_id: Optional[str]) -> str:
    if product_id is None or not str(product_id).strip():
        raise ValidationError("Product id is required")
    return str(product_id).strip()


class CatalogService:

    def __init__(
        self,
        repository,
        cache,
        invalidator,
        search,
        *,
        product_ttl: int = 300,
        suggestion_ttl: int = 60,
        timeout: float = 2.0,
        cache_search_fallback: bool = False,
    ):
        self._repo = repository
        self._cache = cache
        self._invalidator = invalidator
        self._search = search
        self.product_ttl = product_ttl
        self.suggestion_ttl = suggestion_ttl
        self.timeout = timeout
        self.cache_search_fallback = cache_search_fallback

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _invalidate(self, *tags: str) -> List[PostCommitHook]:
        return [
            PostCommitHook(f"invalidate:{tag}", lambda tag=tag: self._invalidator.invalidate(tag))
            for tag in tags
        ]

    async def create_product(self, data: ProductCreate) -> Product:
        title = data.title.strip() if data.title else ""
        if not title:
            raise ValidationError("Product title must not be blank")

        product = await self._repo.create(data.model_copy(update={"title": title}))
        logger.info("product_created", product_id=product.id, title=product.title)

        await run_post_commit(
            "create_product",
            [
                PostCommitHook("index_product", lambda: self._search.index_product(product)),
                *self._invalidate(CacheTags.SEARCH, CacheTags.PRODUCT_LIST, CacheTags.SUGGESTIONS),
            ],
            self.timeout,
        )
        return product

    async def update_product(self, data: ProductUpdate) -> Product:
        product_id = _require_id(data.id)

        current = await self._repo.find_one(product_id)
        merged = swap_out_blank_fields(data, current)
        updated = await self._repo.update(merged)
        logger.info("product_updated", product_id=product_id)

        await run_post_commit(
            "update_product",
            [
                PostCommitHook("update_index", lambda: self._search.update_product(product_id, updated)),
                *self._invalidate(
                    CacheTags.SEARCH,
                    CacheTags.SUGGESTIONS,
                    CacheTags.PRODUCTS,
                    CacheTags.PRODUCT_LIST,
                ),
            ],
            self.timeout,
        )
        return updated

    async def delete_product(self, product_id: str) -> str:
        product_id = _require_id(product_id)

        deleted = await self._repo.delete(product_id)
        logger.info("product_deleted", product_id=deleted)

        await run_post_commit(
            "delete_product",
            [
                PostCommitHook("delete_from_index", lambda: self._search.delete_product(deleted)),
                *self._invalidate(
                    CacheTags.SEARCH,
                    CacheTags.PRODUCTS,
                    CacheTags.PRODUCT_LIST,
                    CacheTags.SUGGESTIONS,
                ),
            ],
            self.timeout,
        )
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _read_through(
        self,
        key: str,
        tag: str,
        adapter: TypeAdapter,
        load: Callable[[], Awaitable[Any]],
    ) -> Any:
        # Registered on hit and miss alike so an invalidation can always find the key
        await register_key(self._cache, tag, key, self.timeout)

        cached = await try_cache(self._cache, key, adapter, self.timeout)
        if cached is not None:
            return cached

        logger.debug("cache_miss", key=key)
        value = await load()
        await write_cache(self._cache, key, self.product_ttl, adapter, value, self.timeout)
        return value

    async def get_product(self, product_id: str) -> Product:
        product_id = _require_id(product_id)
        return await self._read_through(
            CacheKeys.product(product_id),
            CacheTags.PRODUCTS,
            ProductAdapter,
            lambda: self._repo.find_one(product_id),
        )

    async def get_products(self, limit: int, offset: int) -> List[Product]:
        return await self._read_through(
            CacheKeys.product_list(limit, offset),
            CacheTags.PRODUCT_LIST,
            ProductList,
            lambda: self._repo.find(limit, offset),
        )

    async def search_products(self, query: str, limit: int, offset: int) -> List[Product]:
        query = query or ""
        key = CacheKeys.search(query, limit, offset)
        await register_key(self._cache, CacheTags.SEARCH, key, self.timeout)

        cached = await try_cache(self._cache, key, ProductList, self.timeout)
        if cached is not None:
            return cached

        found = await try_search_index(
            "basic_search",
            lambda: self._search.basic_search(query, limit, offset),
            self.timeout,
            query=query,
        )
        if not isinstance(found, Degraded):
            await write_cache(self._cache, key, self.product_ttl, ProductList, found, self.timeout)
            return found

        products = await self._repo.search_products(query, limit, offset)
        logger.info("search_served_from_store", query=query, results=len(products))
        if self.cache_search_fallback:
            await write_cache(self._cache, key, self.suggestion_ttl, ProductList, products, self.timeout)
        return products

    async def get_suggestions(self, query: str, limit: int) -> List[str]:
        query = query or ""
        if not query.strip():
            return []
        key = CacheKeys.suggestions(query, limit)
        await register_key(self._cache, CacheTags.SUGGESTIONS, key, self.timeout)

        cached = await try_cache(self._cache, key, TitleList, self.timeout)
        if cached is not None:
            logger.info("suggestions_served", source="cache", query=query, results=len(cached))
            return cached

        titles = await try_search_index(
            "basic_suggestion_search",
            lambda: self._search.basic_suggestion_search(query, limit),
            self.timeout,
            query=query,
        )
        source = "index"
        if isinstance(titles, Degraded):
            titles = await self._repo.get_suggestions(query, limit)
            source = "store"

        await write_cache(self._cache, key, self.suggestion_ttl, TitleList, titles, self.timeout)
        logger.info("suggestions_served", source=source, query=query, results=len(titles))
        return titles

    async def cache_health(self) -> bool:
        result = await guarded("cache", "ping", self._cache.ping, self.timeout)
        return not isinstance(result, Degraded) and bool(result)
