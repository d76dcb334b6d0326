from retailops.schemas.base import APIModel
from retailops.schemas.sale import SaleResponse


class MonthlySummary(APIModel):
    """Totals over every sale in a calendar month."""
    total_sales: float
    total_profit: float
    number_of_sales: int


class MonthlyReportResponse(APIModel):
    """Schema for the monthly sales report."""
    sales: list[SaleResponse]
    summary: MonthlySummary


class DashboardStats(APIModel):
    """Headline numbers for the dashboard."""
    total_products: int
    today_sales: float
    monthly_orders: int
    active_suppliers: int
