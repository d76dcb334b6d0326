from pydantic import Field
from datetime import datetime
from typing import Optional

from retailops.models.product import ProductCategory
from retailops.schemas.base import APIModel
from retailops.schemas.supplier import SupplierResponse


class ProductBase(APIModel):
    """Base schema for Product with common attributes."""
    product_code: str = Field(
        ..., alias="productId", min_length=1, max_length=64, description="External product code (unique)"
    )
    name: str = Field(..., min_length=1, max_length=255, description="Product name (unique)")
    quantity: int = Field(..., ge=0, description="Units in stock (must be non-negative)")
    cost_price: float = Field(..., gt=0, description="Unit cost (must be positive)")
    category: ProductCategory = Field(..., description="Product category")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    supplier_id: Optional[int] = Field(None, alias="supplier", description="ID of the supplier")


class ProductUpdate(APIModel):
    """Schema for updating an existing product. All fields are optional."""
    product_code: Optional[str] = Field(None, alias="productId", min_length=1, max_length=64)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(None, ge=0)
    cost_price: Optional[float] = Field(None, gt=0)
    category: Optional[ProductCategory] = None
    supplier_id: Optional[int] = Field(None, alias="supplier")


class ProductResponse(ProductBase):
    """Schema for product response, with the supplier expanded."""
    id: int
    supplier: Optional[SupplierResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
