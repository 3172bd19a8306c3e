from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from fastapi.responses import JSONResponse
from typing import List
from catalog.errors import NotFoundError, ValidationError
from catalog.schemas.products import (
    DeletedProduct,
    Product,
    ProductCreate,
    ProductPatch,
    ProductUpdate,
)
from catalog.services.catalog_service import CatalogService
import structlog

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["products"])


def get_catalog_service(request: Request) -> CatalogService:
    """Dependency to get the service built during startup"""
    return request.app.state.catalog_service


def _server_error(event: str, detail: str, error: Exception) -> HTTPException:
    logger.error(event, error=str(error), exc_info=True)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.get("/product/cache-health")
async def cache_health(service: CatalogService = Depends(get_catalog_service)):
    if await service.cache_health():
        return {"message": "Catalog service cache is healthy"}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": "Catalog service cache is down"},
    )


@router.get("/product/search", response_model=List[Product])
async def search_products(
    q: str = Query("", max_length=200),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return await service.search_products(q, limit, offset)
    except Exception as e:
        raise _server_error("search_products_error", "Failed to search products", e)


@router.get("/product/suggestions", response_model=List[str])
async def get_suggestions(
    q: str = Query("", max_length=200),
    limit: int = Query(5, ge=1, le=50),
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return await service.get_suggestions(q, limit)
    except Exception as e:
        raise _server_error("get_suggestions_error", "Failed to get suggestions", e)


@router.post("/product", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return await service.create_product(product_data)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _server_error("create_product_error", "Failed to create product", e)


@router.get("/products", response_model=List[Product])
async def list_products(
    limit: int = Query(10, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return await service.get_products(limit, offset)
    except Exception as e:
        raise _server_error("list_products_error", "Failed to retrieve products", e)


@router.get("/product/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        return await service.get_product(product_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise _server_error("get_product_error", "Failed to retrieve product", e)


@router.patch("/product/{product_id}", response_model=Product)
async def update_product(
    product_id: str,
    product_data: ProductPatch,
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        update = ProductUpdate(id=product_id, **product_data.model_dump())
        return await service.update_product(update)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise _server_error("update_product_error", "Failed to update product", e)


@router.delete("/product/{product_id}", response_model=DeletedProduct)
async def delete_product(
    product_id: str,
    service: CatalogService = Depends(get_catalog_service),
):
    try:
        deleted_id = await service.delete_product(product_id)
        return DeletedProduct(id=deleted_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise _server_error("delete_product_error", "Failed to delete product", e)
