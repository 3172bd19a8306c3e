"""
Error taxonomy for the catalog service.

ValidationError and NotFoundError reach the caller. PersistenceError is
a store failure that is not a missing record. InfrastructureDegradation
covers the cache and the search index: the service logs it and moves on
to the next, more authoritative source.
"""


class CatalogError(Exception):
    """Base class for every catalog error"""


class ValidationError(CatalogError, ValueError):
    """Caller supplied invalid input; raised before any side effect"""


class NotFoundError(CatalogError, LookupError):
    """The store has no product with the requested id"""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product with id {product_id} not found")


class PersistenceError(CatalogError):
    """Store read/write failure that is not a missing record"""


class InfrastructureDegradation(CatalogError):
    """A cache or search-index call failed"""


class CacheUnavailableError(InfrastructureDegradation):
    pass


class SearchIndexUnavailableError(InfrastructureDegradation):
    pass
