# catalog/schemas/products.py
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Product(BaseModel):
    """
    A catalog product as stored in Postgres.
    The cache and the search index only ever hold copies of this shape.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)


class ProductCreate(BaseModel):
    """Schema for creating a new product"""
    title: str = Field(..., min_length=1, max_length=255, description="Product title")
    description: str = Field("", description="Free-text description, may be empty")
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(..., ge=0)


class ProductPatch(BaseModel):
    """
    Body of PATCH /product/{id}.
    Omitted or blank fields keep their stored value.
    """
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)


class ProductUpdate(ProductPatch):
    """Update request handed to the service: the patch plus the target id"""
    id: Optional[str] = None


class DeletedProduct(BaseModel):
    id: str


ProductAdapter = TypeAdapter(Product)
ProductList = TypeAdapter(List[Product])
TitleList = TypeAdapter(List[str])
