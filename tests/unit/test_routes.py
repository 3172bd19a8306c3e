"""HTTP-level tests for the product routes, wired to in-memory collaborators."""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from catalog.cache.invalidator import CacheInvalidator
from catalog.main import create_app
from catalog.services.catalog_service import CatalogService


@pytest.fixture()
def http(service: CatalogService) -> TestClient:
    app = create_app()
    app.state.catalog_service = service
    return TestClient(app)


def _create(http: TestClient, title: str = "Phone", **fields) -> dict:
    body = {"title": title, "description": "a smart phone", "price": 199.99, "stock": 5}
    body.update(fields)
    response = http.post("/product", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestProductRoutes:
    def test_create_returns_201_with_id(self, http: TestClient) -> None:
        product = _create(http, "Widget", description="", price=0, stock=0)

        assert product["id"]
        assert Decimal(str(product["price"])) == 0
        assert product["stock"] == 0

    def test_create_blank_title_is_400(self, http: TestClient) -> None:
        response = http.post("/product", json={"title": "  ", "price": 1, "stock": 1})
        assert response.status_code == 400

    def test_create_negative_price_is_rejected(self, http: TestClient) -> None:
        response = http.post("/product", json={"title": "Phone", "price": -1, "stock": 1})
        assert response.status_code == 422

    def test_get_and_list(self, http: TestClient) -> None:
        product = _create(http)

        assert http.get(f"/product/{product['id']}").json()["title"] == "Phone"
        listing = http.get("/products", params={"limit": 10, "offset": 0}).json()
        assert [p["id"] for p in listing] == [product["id"]]

    def test_missing_product_is_404(self, http: TestClient) -> None:
        assert http.get("/product/does-not-exist").status_code == 404

    def test_patch_merges_blank_fields(self, http: TestClient) -> None:
        product = _create(http, "A", description="B", price=1, stock=2)

        response = http.patch(f"/product/{product['id']}", json={"title": "", "description": "C"})

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "A"
        assert body["description"] == "C"
        assert body["stock"] == 2

    def test_patch_unknown_product_is_404(self, http: TestClient) -> None:
        assert http.patch("/product/missing", json={"title": "X"}).status_code == 404

    def test_delete_then_get_is_404(self, http: TestClient) -> None:
        product = _create(http)

        response = http.delete(f"/product/{product['id']}")

        assert response.status_code == 200
        assert response.json() == {"id": product["id"]}
        assert http.get(f"/product/{product['id']}").status_code == 404

    def test_search_and_suggestions(self, http: TestClient) -> None:
        _create(http, "Phone")
        _create(http, "Laptop", description="portable")

        results = http.get("/product/search", params={"q": "phone"}).json()
        suggestions = http.get("/product/suggestions", params={"q": "pho", "limit": 5}).json()

        assert [p["title"] for p in results] == ["Phone"]
        assert suggestions == ["Phone"]

    def test_search_without_query_on_empty_store(self, http: TestClient) -> None:
        response = http.get("/product/search")
        assert response.status_code == 200
        assert response.json() == []

    def test_store_failure_is_500(self, http: TestClient, repository) -> None:
        repository.unreachable = True
        response = http.get("/products")
        assert response.status_code == 500

    def test_cache_health(self, http: TestClient) -> None:
        response = http.get("/product/cache-health")
        assert response.status_code == 200

    def test_cache_health_down_is_503(self, repository, search_index, broken_cache) -> None:
        app = create_app()
        app.state.catalog_service = CatalogService(
            repository, broken_cache, CacheInvalidator(broken_cache), search_index, timeout=1.0
        )

        response = TestClient(app).get("/product/cache-health")

        assert response.status_code == 503

    def test_health(self, http: TestClient) -> None:
        assert http.get("/health").json() == {"status": "healthy"}
