from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from retailops.database import get_db
from retailops.services.report_service import ReportService
from retailops.schemas.report import DashboardStats
from retailops.utils.cache import CacheService, get_cache

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Dashboard statistics",
    description="Product count, today's sales, this month's sale count and supplier count. Cached in Redis."
)
def dashboard_stats(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache)
):
    """Get dashboard statistics."""
    service = ReportService(db, cache)
    return service.dashboard_stats()
