from pydantic import Field
from datetime import datetime
from typing import Optional

from retailops.models.product import ProductCategory
from retailops.schemas.base import APIModel


class SupplierBase(APIModel):
    """Base schema for Supplier with common attributes."""
    name: str = Field(..., min_length=2, max_length=255, description="Supplier name (unique)")
    contact: str = Field(..., min_length=5, max_length=255, description="Contact details (unique)")
    address: Optional[str] = Field(None, max_length=500)
    payment_terms: Optional[str] = Field(None, max_length=255, description="e.g. '30 days'")


class SupplierCreate(SupplierBase):
    """Schema for creating a new supplier."""
    pass


class SupplierUpdate(APIModel):
    """Schema for updating an existing supplier. All fields are optional."""
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    contact: Optional[str] = Field(None, min_length=5, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    payment_terms: Optional[str] = Field(None, max_length=255)


class SupplierResponse(SupplierBase):
    """Schema for supplier response including all fields."""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SuppliedProduct(APIModel):
    """Product as listed under its supplier."""
    id: int
    product_code: str = Field(..., alias="productId")
    name: str
    quantity: int
    category: ProductCategory


class SupplierDetailResponse(SupplierResponse):
    """Supplier together with the products it supplies."""
    products: list[SuppliedProduct] = []
