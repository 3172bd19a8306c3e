import time
from typing import Any, Dict, List, Optional

import structlog
from elasticsearch import (
    ApiError,
    AsyncElasticsearch,
    NotFoundError as DocumentNotFound,
    TransportError,
)

from catalog.errors import SearchIndexUnavailableError
from catalog.schemas.products import Product

logger = structlog.get_logger(__name__)

ES_ERRORS = (ApiError, TransportError)

INDEX_SETTINGS: Dict[str, Any] = {
    "number_of_shards": 1,
    "number_of_replicas": 0,
    "analysis": {
        "analyzer": {
            "product_analyzer": {
                "type": "custom",
                "tokenizer": "standard",
                "filter": ["lowercase", "stop"],
            },
        },
    },
}

INDEX_MAPPINGS: Dict[str, Any] = {
    "properties": {
        "id": {"type": "keyword"},
        "title": {
            "type": "text",
            "analyzer": "product_analyzer",
            "fields": {"keyword": {"type": "keyword"}},
        },
        "description": {"type": "text", "analyzer": "product_analyzer"},
        "price": {"type": "scaled_float", "scaling_factor": 100},
        "stock": {"type": "integer"},
    },
}


def _document(product: Product) -> Dict[str, Any]:
    return product.model_dump(mode="json")


class SearchIndexClient:
    """
    Wraps the "products" index. Every engine failure surfaces as
    SearchIndexUnavailableError; whether it matters is up to the caller.
    """

    def __init__(
        self,
        es: AsyncElasticsearch,
        index_name: str = "products",
        default_size: int = 100,
    ):
        self._es = es
        self.index_name = index_name
        self.default_size = default_size

    @classmethod
    def from_url(cls, url: str, timeout: int, index_name: str = "products", default_size: int = 100) -> "SearchIndexClient":
        return cls(
            AsyncElasticsearch(hosts=[url], request_timeout=timeout),
            index_name=index_name,
            default_size=default_size,
        )

    async def close(self) -> None:
        try:
            await self._es.close()
        except Exception as e:
            logger.warning("elasticsearch_close_error", error=str(e))

    async def ping(self) -> bool:
        try:
            return bool(await self._es.ping())
        except ES_ERRORS as e:
            logger.warning("elasticsearch_ping_failed", error=str(e))
            return False

    async def create_index(self) -> None:
        """Idempotent: creates the index only when it does not exist yet"""
        try:
            if await self._es.indices.exists(index=self.index_name):
                logger.info("elasticsearch_index_exists", index=self.index_name)
                return
            await self._es.indices.create(
                index=self.index_name,
                settings=INDEX_SETTINGS,
                mappings=INDEX_MAPPINGS,
            )
            logger.info("elasticsearch_index_created", index=self.index_name)
        except ES_ERRORS as e:
            logger.error("elasticsearch_index_create_failed", index=self.index_name, error=str(e))
            raise SearchIndexUnavailableError(str(e)) from e

    async def count(self) -> int:
        try:
            response = await self._es.count(index=self.index_name)
            return int(response["count"])
        except ES_ERRORS as e:
            raise SearchIndexUnavailableError(str(e)) from e

    async def index_product(self, product: Product) -> None:
        try:
            await self._es.index(index=self.index_name, id=product.id, document=_document(product))
            logger.info("product_indexed", product_id=product.id)
        except ES_ERRORS as e:
            logger.warning("product_index_failed", product_id=product.id, error=str(e))
            raise SearchIndexUnavailableError(str(e)) from e

    async def update_product(self, product_id: str, product: Product) -> None:
        """Upserts, so a product missed by the startup sync is still indexed"""
        try:
            await self._es.update(
                index=self.index_name,
                id=product_id,
                doc=_document(product),
                doc_as_upsert=True,
            )
            logger.info("product_index_updated", product_id=product_id)
        except ES_ERRORS as e:
            logger.warning("product_index_update_failed", product_id=product_id, error=str(e))
            raise SearchIndexUnavailableError(str(e)) from e

    async def delete_product(self, product_id: str) -> None:
        """A document that is already gone counts as deleted"""
        try:
            await self._es.delete(index=self.index_name, id=product_id)
            logger.info("product_index_deleted", product_id=product_id)
        except DocumentNotFound:
            logger.debug("product_index_delete_missing", product_id=product_id)
        except ES_ERRORS as e:
            logger.warning("product_index_delete_failed", product_id=product_id, error=str(e))
            raise SearchIndexUnavailableError(str(e)) from e

    async def bulk_index_products(self, products: List[Product]) -> None:
        if not products:
            return

        operations: List[Dict[str, Any]] = []
        for product in products:
            operations.append({"index": {"_index": self.index_name, "_id": product.id}})
            operations.append(_document(product))

        try:
            response = await self._es.bulk(operations=operations)
        except ES_ERRORS as e:
            logger.error("product_bulk_index_failed", count=len(products), error=str(e))
            raise SearchIndexUnavailableError(str(e)) from e

        if response.get("errors"):
            failed = [item for item in response["items"] if item["index"].get("error")]
            logger.warning("product_bulk_index_partial", count=len(products), failed=len(failed))
        else:
            logger.info("product_bulk_indexed", count=len(products))

    async def basic_search(
        self,
        query: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Product]:
        """
        Relevance search over title and description, engine-ranked.
        An empty query lists documents unfiltered.
        """
        size = min(limit, self.default_size) if limit else self.default_size
        if query:
            es_query = {"multi_match": {"query": query, "fields": ["title", "description"]}}
        else:
            es_query = {"match_all": {}}

        try:
            result = await self._es.search(
                index=self.index_name,
                query=es_query,
                size=size,
                from_=offset,
            )
        except ES_ERRORS as e:
            raise SearchIndexUnavailableError(str(e)) from e

        return [Product.model_validate(hit["_source"]) for hit in result["hits"]["hits"]]

    async def basic_suggestion_search(self, query: str, limit: int = 5) -> List[str]:
        """
        Prefix search weighted toward the title. Returns distinct titles in
        relevance order; a blank query suggests nothing.
        """
        if not query.strip():
            return []

        try:
            result = await self._es.search(
                index=self.index_name,
                query={
                    "multi_match": {
                        "query": query,
                        "fields": ["title^2", "description"],
                        "type": "bool_prefix",
                    }
                },
                source_includes=["title"],
                size=limit,
            )
        except ES_ERRORS as e:
            raise SearchIndexUnavailableError(str(e)) from e

        titles = [hit["_source"]["title"] for hit in result["hits"]["hits"]]
        return list(dict.fromkeys(titles))

    async def initialize_elasticsearch(self, repository, batch_size: int = 1000) -> None:
        """
        Startup sync: ensure the index exists and, if it is empty, bulk load
        the first `batch_size` products from the store. Never raises; the
        service runs without search when the engine is down.
        """
        start = time.perf_counter()
        try:
            if not await self.ping():
                logger.warning("elasticsearch_unreachable_skipping_init")
                return

            await self.create_index()

            existing = await self.count()
            if existing > 0:
                logger.info("elasticsearch_bulk_sync_skipped", documents=existing)
                return

            logger.info("elasticsearch_index_empty_bulk_sync")
            products = await repository.find(batch_size, 0)
            await self.bulk_index_products(products)
            logger.info(
                "elasticsearch_initial_sync_complete",
                indexed=len(products),
                duration_ms=f"{(time.perf_counter() - start) * 1000:.2f}",
            )
        except Exception as e:
            logger.warning("elasticsearch_init_failed", error=str(e))
