from pydantic import Field
from datetime import datetime
from typing import Optional

from retailops.schemas.base import APIModel
from retailops.schemas.product import ProductResponse


class SaleItemCreate(APIModel):
    """
    One requested line of a sale.

    Fields are deliberately loose here; the sale service reports missing or
    non-positive values with its own messages, in line order.
    """
    product_id: Optional[int] = Field(None, alias="product", description="ID of the product sold")
    quantity: Optional[int] = Field(None, description="Units sold (must be positive)")
    sale_price: Optional[float] = Field(None, description="Unit sale price (must be positive)")


class SaleCreate(APIModel):
    """Schema for creating a new sale."""
    voucher_number: Optional[str] = Field(None, max_length=100, description="Unique voucher number")
    products: Optional[list[SaleItemCreate]] = Field(None, description="Ordered line items")
    date: Optional[datetime] = Field(None, description="Sale timestamp, defaults to now")


class SaleItemResponse(APIModel):
    """Schema for a persisted sale line, with the product expanded when it still exists."""
    id: int
    product: Optional[ProductResponse] = None
    product_name: str
    product_code: str
    quantity: int
    sale_price: float
    cost_price: float


class SaleResponse(APIModel):
    """Schema for sale response."""
    id: int
    voucher_number: str
    products: list[SaleItemResponse] = Field(..., validation_alias="items")
    total_amount: float
    profit: float
    date: datetime
    created_at: Optional[datetime] = None
