from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from retailops.database import get_db
from retailops.services.supplier_service import SupplierService
from retailops.services.exceptions import DuplicateSupplierError
from retailops.schemas.base import MessageResponse
from retailops.schemas.supplier import (
    SupplierCreate,
    SupplierUpdate,
    SupplierResponse,
    SupplierDetailResponse
)
from retailops.utils.cache import CacheService, get_cache

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@router.get(
    "/",
    response_model=list[SupplierResponse],
    summary="List all suppliers"
)
def list_suppliers(db: Session = Depends(get_db)):
    """Get all suppliers."""
    service = SupplierService(db)
    return service.get_all()


@router.get(
    "/{supplier_id}",
    response_model=SupplierDetailResponse,
    summary="Get supplier by ID",
    description="Get a supplier together with the products it supplies."
)
def get_supplier(
    supplier_id: int,
    db: Session = Depends(get_db)
):
    """Get a supplier by ID."""
    service = SupplierService(db)
    supplier = service.get_by_id(supplier_id)

    if not supplier:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Supplier not found"
        )

    return supplier


@router.post(
    "/",
    response_model=SupplierResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new supplier"
)
def create_supplier(
    supplier_data: SupplierCreate,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """
    Create a new supplier.

    - **name**: At least 2 characters, unique (required)
    - **contact**: At least 5 characters, unique (required)
    - **address**, **paymentTerms**: optional
    """
    service = SupplierService(db, cache)

    try:
        return service.create(supplier_data)
    except DuplicateSupplierError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.put(
    "/{supplier_id}",
    response_model=SupplierResponse,
    summary="Update a supplier"
)
def update_supplier(
    supplier_id: int,
    supplier_data: SupplierUpdate,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """Update a supplier. Only provided fields will be updated."""
    service = SupplierService(db, cache)

    try:
        supplier = service.update(supplier_id, supplier_data)
    except DuplicateSupplierError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not supplier:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Supplier not found"
        )

    return supplier


@router.delete(
    "/{supplier_id}",
    response_model=MessageResponse,
    summary="Delete a supplier",
    description="Delete a supplier. Products it supplied are kept without a supplier."
)
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """Delete a supplier."""
    service = SupplierService(db, cache)
    deleted = service.delete(supplier_id)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Supplier not found"
        )

    return {"message": "Supplier deleted successfully"}
