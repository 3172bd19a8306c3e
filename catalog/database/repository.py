import asyncpg
import structlog
import uuid
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncGenerator, List
from catalog.errors import NotFoundError
from catalog.schemas.products import Product, ProductCreate
from catalog.utils.db_retry import db_retry, persistence_errors

logger = structlog.get_logger(__name__)

PRODUCT_COLUMNS = "id::text AS id, title, description, price, stock"


class IsolationLevel(Enum):
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


@asynccontextmanager
async def transaction(
    conn: asyncpg.Connection,
    isolation: IsolationLevel = IsolationLevel.READ_COMMITTED,
    readonly: bool = False
) -> AsyncGenerator[asyncpg.Connection, None]:
    options = [f"ISOLATION LEVEL {isolation.value}"]
    if readonly:
        options.append("READ ONLY")
    tx_sql = f"BEGIN {' '.join(options)}"
    try:
        await conn.execute(tx_sql)
        logger.debug("transaction_started", isolation=isolation.value, readonly=readonly)
        yield conn
        await conn.execute("COMMIT")
        logger.debug("transaction_committed")
    except Exception as e:
        await conn.execute("ROLLBACK")
        logger.warning("transaction_rolled_back", error=str(e), error_type=type(e).__name__)
        raise


def escape_like(text: str) -> str:
    """Escape ILIKE wildcards so user input matches literally"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_id(product_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(product_id))
    except ValueError:
        raise NotFoundError(product_id) from None


def _to_product(row: asyncpg.Record) -> Product:
    return Product(**dict(row))


class CatalogRepository:
    """
    Postgres-backed product store. This is the source of truth: the cache
    and the search index only hold copies of what is written here.
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    @asynccontextmanager
    async def _connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        async with self._pool.acquire() as conn:
            yield conn

    @persistence_errors
    @db_retry()
    async def create(self, data: ProductCreate) -> Product:
        product_id = uuid.uuid4()
        query = f"""
            INSERT INTO catalog.products (id, title, description, price, stock)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING {PRODUCT_COLUMNS}
        """
        async with self._connection() as conn:
            async with transaction(conn):
                row = await conn.fetchrow(
                    query, product_id, data.title, data.description, data.price, data.stock
                )
        logger.info("product_row_created", product_id=str(product_id))
        return _to_product(row)

    @persistence_errors
    @db_retry()
    async def update(self, product: Product) -> Product:
        query = f"""
            UPDATE catalog.products
            SET title = $2, description = $3, price = $4, stock = $5, updated_at = now()
            WHERE id = $1
            RETURNING {PRODUCT_COLUMNS}
        """
        async with self._connection() as conn:
            async with transaction(conn):
                row = await conn.fetchrow(
                    query,
                    _parse_id(product.id),
                    product.title,
                    product.description,
                    product.price,
                    product.stock,
                )
        if row is None:
            raise NotFoundError(product.id)
        logger.info("product_row_updated", product_id=product.id)
        return _to_product(row)

    @persistence_errors
    @db_retry()
    async def delete(self, product_id: str) -> str:
        async with self._connection() as conn:
            async with transaction(conn, isolation=IsolationLevel.SERIALIZABLE):
                deleted = await conn.fetchval(
                    "DELETE FROM catalog.products WHERE id = $1 RETURNING id::text",
                    _parse_id(product_id),
                )
        if deleted is None:
            raise NotFoundError(product_id)
        logger.info("product_row_deleted", product_id=deleted)
        return deleted

    @persistence_errors
    @db_retry()
    async def find(self, limit: int, offset: int) -> List[Product]:
        query = f"""
            SELECT {PRODUCT_COLUMNS}
            FROM catalog.products
            ORDER BY created_at ASC, id ASC
            LIMIT $1 OFFSET $2
        """
        async with self._connection() as conn:
            rows = await conn.fetch(query, limit, offset)
        return [_to_product(row) for row in rows]

    @persistence_errors
    @db_retry()
    async def find_one(self, product_id: str) -> Product:
        query = f"""
            SELECT {PRODUCT_COLUMNS}
            FROM catalog.products
            WHERE id = $1
        """
        async with self._connection() as conn:
            row = await conn.fetchrow(query, _parse_id(product_id))
        if row is None:
            raise NotFoundError(product_id)
        return _to_product(row)

    @persistence_errors
    @db_retry()
    async def search_products(self, query: str, limit: int, offset: int) -> List[Product]:
        """
        Case-insensitive substring match over title and description.
        An empty query returns a plain page.
        """
        sql = f"""
            SELECT {PRODUCT_COLUMNS}
            FROM catalog.products
            WHERE $1 = ''
               OR title ILIKE '%' || $1 || '%' ESCAPE '\\'
               OR description ILIKE '%' || $1 || '%' ESCAPE '\\'
            ORDER BY created_at ASC, id ASC
            LIMIT $2 OFFSET $3
        """
        async with self._connection() as conn:
            rows = await conn.fetch(sql, escape_like(query), limit, offset)
        return [_to_product(row) for row in rows]

    @persistence_errors
    @db_retry()
    async def get_suggestions(self, query: str, limit: int) -> List[str]:
        """Distinct titles whose title or description contains the query"""
        if not query.strip():
            return []
        sql = """
            SELECT DISTINCT title
            FROM catalog.products
            WHERE title ILIKE '%' || $1 || '%' ESCAPE '\\'
               OR description ILIKE '%' || $1 || '%' ESCAPE '\\'
            ORDER BY title ASC
            LIMIT $2
        """
        async with self._connection() as conn:
            rows = await conn.fetch(sql, escape_like(query), limit)
        return [row["title"] for row in rows]
