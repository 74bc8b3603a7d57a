from typing import List
from storefront.schemas.base import CamelModel


class AnalyticsData(CamelModel):
    users: int
    products: int
    total_sales: int
    total_revenue: float


class DailySales(CamelModel):
    date: str
    sales: int
    revenue: float


class AnalyticsResponse(CamelModel):
    analytics_data: AnalyticsData
    chart_data: List[DailySales]
