"""Shared fixtures and in-memory stand-ins for the catalog unit tests."""

from __future__ import annotations

import uuid
from typing import Dict, List

import pytest

from catalog.cache.invalidator import CacheInvalidator
from catalog.cache.memory_cache import MemoryCacheStore
from catalog.errors import (
    CacheUnavailableError,
    NotFoundError,
    PersistenceError,
    SearchIndexUnavailableError,
)
from catalog.schemas.products import Product, ProductCreate
from catalog.services.catalog_service import CatalogService


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryRepository:
    """Store with the same contract as CatalogRepository, kept in a dict."""

    def __init__(self) -> None:
        self.products: Dict[str, Product] = {}
        self.unreachable = False
        self.calls: Dict[str, int] = {}

    def _enter(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.unreachable:
            raise PersistenceError(f"{name} failed: connection refused")

    @staticmethod
    def _matches(product: Product, query: str) -> bool:
        needle = query.lower()
        return needle in product.title.lower() or needle in product.description.lower()

    async def create(self, data: ProductCreate) -> Product:
        self._enter("create")
        product = Product(id=str(uuid.uuid4()), **data.model_dump())
        self.products[product.id] = product
        return product

    async def update(self, product: Product) -> Product:
        self._enter("update")
        if product.id not in self.products:
            raise NotFoundError(product.id)
        self.products[product.id] = product
        return product

    async def delete(self, product_id: str) -> str:
        self._enter("delete")
        if self.products.pop(product_id, None) is None:
            raise NotFoundError(product_id)
        return product_id

    async def find(self, limit: int, offset: int) -> List[Product]:
        self._enter("find")
        return list(self.products.values())[offset:offset + limit]

    async def find_one(self, product_id: str) -> Product:
        self._enter("find_one")
        try:
            return self.products[product_id]
        except KeyError:
            raise NotFoundError(product_id) from None

    async def search_products(self, query: str, limit: int, offset: int) -> List[Product]:
        self._enter("search_products")
        found = [p for p in self.products.values() if not query or self._matches(p, query)]
        return found[offset:offset + limit]

    async def get_suggestions(self, query: str, limit: int) -> List[str]:
        self._enter("get_suggestions")
        if not query.strip():
            return []
        titles: List[str] = []
        for product in self.products.values():
            if self._matches(product, query) and product.title not in titles:
                titles.append(product.title)
        return titles[:limit]


class InMemorySearchIndex:
    """Search index stand-in; flip `down` to simulate an unreachable engine."""

    def __init__(self) -> None:
        self.documents: Dict[str, Product] = {}
        self.down = False
        self.calls: Dict[str, int] = {}

    def _enter(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.down:
            raise SearchIndexUnavailableError("connection refused")

    async def index_product(self, product: Product) -> None:
        self._enter("index_product")
        self.documents[product.id] = product

    async def update_product(self, product_id: str, product: Product) -> None:
        self._enter("update_product")
        self.documents[product_id] = product

    async def delete_product(self, product_id: str) -> None:
        self._enter("delete_product")
        self.documents.pop(product_id, None)

    async def basic_search(self, query: str, limit=None, offset: int = 0) -> List[Product]:
        self._enter("basic_search")
        needle = query.lower()
        found = [
            p for p in self.documents.values()
            if not needle or needle in p.title.lower() or needle in p.description.lower()
        ]
        return found[offset:offset + (limit or 100)]

    async def basic_suggestion_search(self, query: str, limit: int = 5) -> List[str]:
        self._enter("basic_suggestion_search")
        needle = query.strip().lower()
        if not needle:
            return []
        titles = [
            p.title for p in self.documents.values()
            if any(word.startswith(needle) for word in p.title.lower().split())
        ]
        return list(dict.fromkeys(titles))[:limit]


class BrokenCache:
    """Every call fails, like a Redis that went away after startup."""

    async def ping(self) -> bool:
        raise CacheUnavailableError("redis unavailable for ping")

    async def get(self, key):
        raise CacheUnavailableError("redis unavailable for get")

    async def set_with_ttl(self, key, ttl, value):
        raise CacheUnavailableError("redis unavailable for setex")

    async def add_to_set(self, set_name, member):
        raise CacheUnavailableError("redis unavailable for sadd")

    async def get_set_members(self, set_name):
        raise CacheUnavailableError("redis unavailable for smembers")

    async def delete_keys(self, *keys):
        raise CacheUnavailableError("redis unavailable for delete")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCacheStore:
    return MemoryCacheStore(max_size=1000, timer=clock)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def search_index() -> InMemorySearchIndex:
    return InMemorySearchIndex()


@pytest.fixture
def service(repository, cache, search_index) -> CatalogService:
    return CatalogService(
        repository,
        cache,
        CacheInvalidator(cache),
        search_index,
        product_ttl=300,
        suggestion_ttl=60,
        timeout=1.0,
    )


@pytest.fixture
def broken_cache() -> BrokenCache:
    return BrokenCache()
