"""
Cache key and tag names for catalog reads.

Every key written by a read path belongs to exactly one tag, and writes
invalidate tags rather than individual keys.
"""


class CacheTags:
    PRODUCTS = "product_keys"
    PRODUCT_LIST = "product_list_keys"
    SEARCH = "search_keys"
    SUGGESTIONS = "suggestions_keys"


class CacheKeys:
    """Deterministic keys: operation name followed by its parameters"""

    @staticmethod
    def product(product_id: str) -> str:
        return f"product:{product_id}"

    @staticmethod
    def product_list(limit: int, offset: int) -> str:
        return f"product_list:{limit}:{offset}"

    @staticmethod
    def search(query: str, limit: int, offset: int) -> str:
        return f"search:{query}:{limit}:{offset}"

    @staticmethod
    def suggestions(query: str, limit: int) -> str:
        return f"suggestions:{query}:{limit}"
