from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from retailops.database import get_db
from retailops.services.product_service import ProductService
from retailops.services.exceptions import DuplicateProductError, SupplierNotFoundError
from retailops.schemas.base import MessageResponse
from retailops.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse
)
from retailops.utils.cache import CacheService, get_cache

router = APIRouter(prefix="/products", tags=["Products"])


@router.get(
    "/",
    response_model=list[ProductResponse],
    summary="List all products",
    description="Get every product with its supplier expanded."
)
def list_products(db: Session = Depends(get_db)):
    """Get all products."""
    service = ProductService(db)
    return service.get_all()


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get detailed information about a specific product."
)
def get_product(
    product_id: int,
    db: Session = Depends(get_db)
):
    """Get a product by ID."""
    service = ProductService(db)
    product = service.get_by_id(product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )

    return product


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Add a product to inventory. Product ID and name must both be unused."
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """
    Create a new product.

    - **productId**: External product code, unique (required)
    - **name**: Product name, unique (required)
    - **quantity**: Initial stock, must be non-negative (required)
    - **costPrice**: Unit cost, must be positive (required)
    - **category**: "Pistol" or "Rifle" (required)
    - **supplier**: Supplier ID (optional)
    """
    service = ProductService(db, cache)

    try:
        return service.create(product_data)
    except (DuplicateProductError, SupplierNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update product details. Only provided fields will be updated."
)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """
    Update a product.

    Partial updates are supported - only include fields you want to change.
    """
    service = ProductService(db, cache)

    try:
        product = service.update(product_id, product_data)
    except (DuplicateProductError, SupplierNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )

    return product


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete a product",
    description="Delete a product by ID. Past sales keep their line details."
)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """Delete a product."""
    service = ProductService(db, cache)
    deleted = service.delete(product_id)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )

    return {"message": "Product deleted successfully"}
