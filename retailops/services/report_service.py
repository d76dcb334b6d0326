from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select, func
from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

from retailops.models.product import Product
from retailops.models.sale import Sale, SaleItem
from retailops.models.supplier import Supplier
from retailops.services.exceptions import InvalidRequestError
from retailops.utils.cache import CacheService
from retailops.utils.clock import utcnow

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_PREFIX = "dashboard"


def invalidate_report_cache(cache: Optional[CacheService]) -> None:
    """Drop cached report data after a write that changes the numbers."""
    if cache is not None:
        cache.delete_pattern(f"{DASHBOARD_CACHE_PREFIX}:*")


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """
    Return ``(start, end)`` for a calendar month, end exclusive.

    ``start`` is midnight on the 1st and ``end`` is midnight on the 1st of the
    following month, so every instant of the last day falls inside the range.
    """
    if not 1 <= month <= 12:
        raise InvalidRequestError("Month must be between 1 and 12")
    if not 1 <= year <= 9998:
        raise InvalidRequestError("Year is out of range")

    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


class ReportService:
    """
    Read-only aggregates over the sale ledger.

    Nothing here takes locks: each sale row is written in one transaction, so
    a scan sees whole sales even while other requests are writing.
    """

    def __init__(self, db: Session, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache

    def monthly_report(self, year: int, month: int) -> dict:
        """
        Every sale dated inside the given month, with totals.

        Args:
            year: Calendar year
            month: 1-based month

        Returns:
            ``{"sales": [...], "summary": {...}}``; an empty month gives zeros
        """
        start, end = month_bounds(year, month)

        sales = (
            self.db.execute(
                select(Sale)
                .where(Sale.date >= start, Sale.date < end)
                .options(selectinload(Sale.items).selectinload(SaleItem.product))
                .order_by(Sale.date, Sale.id)
            )
            .scalars()
            .all()
        )

        summary = {
            "total_sales": sum(sale.total_amount for sale in sales),
            "total_profit": sum(sale.profit for sale in sales),
            "number_of_sales": len(sales),
        }
        logger.info(f"Monthly report {year}-{month:02d}: {summary['number_of_sales']} sale(s)")

        return {"sales": list(sales), "summary": summary}

    def dashboard_stats(self, now: Optional[datetime] = None) -> dict:
        """
        Headline counts for the dashboard, cached for a short while.

        Args:
            now: Reference time (naive UTC); defaults to the current time

        Returns:
            Dict with total_products, today_sales, monthly_orders, active_suppliers
        """
        use_cache = now is None and self.cache is not None
        if use_cache:
            cached = self.cache.get(DASHBOARD_CACHE_PREFIX, "stats")
            if cached:
                return cached

        now = now or utcnow()
        day_start = datetime(now.year, now.month, now.day)
        day_end = day_start + timedelta(days=1)
        month_start, month_end = month_bounds(now.year, now.month)

        total_products = self.db.execute(select(func.count(Product.id))).scalar_one()
        today_sales = self.db.execute(
            select(func.coalesce(func.sum(Sale.total_amount), 0))
            .where(Sale.date >= day_start, Sale.date < day_end)
        ).scalar_one()
        monthly_orders = self.db.execute(
            select(func.count(Sale.id))
            .where(Sale.date >= month_start, Sale.date < month_end)
        ).scalar_one()
        active_suppliers = self.db.execute(select(func.count(Supplier.id))).scalar_one()

        stats = {
            "total_products": int(total_products),
            "today_sales": float(today_sales or 0),
            "monthly_orders": int(monthly_orders),
            "active_suppliers": int(active_suppliers),
        }

        if use_cache:
            self.cache.set(DASHBOARD_CACHE_PREFIX, "stats", stats)

        return stats
