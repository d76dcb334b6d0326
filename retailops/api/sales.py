from fastapi import APIRouter, Depends, HTTPException, Path, status
from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy.orm import Session
import logging

from retailops.database import get_db
from retailops.services.sale_service import SaleService
from retailops.services.report_service import ReportService
from retailops.services.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidRequestError,
    NotFoundError
)
from retailops.schemas.base import MessageResponse
from retailops.schemas.report import MonthlyReportResponse
from retailops.schemas.sale import SaleCreate, SaleResponse
from retailops.tasks.stock_tasks import check_stock_levels
from retailops.utils.cache import CacheService, get_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get(
    "/",
    response_model=list[SaleResponse],
    summary="List all sales",
    description="Get every sale with its line items and products expanded. Returns 404 when the ledger is empty."
)
def list_sales(db: Session = Depends(get_db)):
    """Get all sales, newest first."""
    service = SaleService(db)
    sales = service.get_sales()

    if not sales:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No sales found"
        )

    return sales


@router.get(
    "/monthly/{year}/{month}",
    response_model=MonthlyReportResponse,
    summary="Monthly sales report",
    description="All sales dated inside the calendar month, with total sales, total profit and count."
)
def monthly_report(
    year: int = Path(..., ge=1, le=9998, description="Calendar year"),
    month: int = Path(..., ge=1, le=12, description="Month, 1-12"),
    db: Session = Depends(get_db)
):
    """Get the sales report for one month."""
    service = ReportService(db)

    try:
        return service.monthly_report(year, month)
    except InvalidRequestError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get(
    "/{sale_id}",
    response_model=SaleResponse,
    summary="Get sale by ID"
)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db)
):
    """Get a sale by ID."""
    service = SaleService(db)
    sale = service.get_sale(sale_id)

    if not sale:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sale not found"
        )

    return sale


@router.post(
    "/",
    response_model=SaleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new sale",
    description="""
    Record a sale and take its quantities out of stock.

    **Stock Handling:**
    Every line is validated first; then each line's stock is decremented with
    a conditional update (`quantity >= requested`). If any line fails, no
    stock changes and no sale is stored.

    After a successful sale, a background Celery task checks the sold
    products for low stock.
    """
)
def create_sale(
    sale_data: SaleCreate,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """
    Create a sale.

    - **voucherNumber**: Unique voucher number (required)
    - **products**: List of `{product, quantity, salePrice}` (at least one)
    - **date**: Sale timestamp (optional, defaults to now)
    """
    service = SaleService(db, cache)

    try:
        sale = service.create_sale(sale_data)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except (InvalidRequestError, ConflictError, InsufficientStockError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    # Trigger background stock check for the sold products
    product_ids = sorted({item.product_id for item in sale.items})
    try:
        check_stock_levels.delay(product_ids)
    except BrokerError as e:
        logger.error(f"Could not queue stock check for sale #{sale.id}: {e}")

    return sale


@router.delete(
    "/{sale_id}",
    response_model=MessageResponse,
    summary="Delete a sale",
    description="Delete a sale and return its quantities to stock."
)
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """Delete a sale, restoring stock."""
    service = SaleService(db, cache)

    try:
        service.delete_sale(sale_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )

    return {"message": "Sale deleted successfully"}
