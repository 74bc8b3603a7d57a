from datetime import date, datetime, timedelta, timezone
from sqlalchemy.orm import Session
from sqlalchemy import func
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.discount_calculator import DiscountCalculator

CHART_DAYS = 7


def utc_date(value: datetime) -> date:
    # SQLite returns naive timestamps, which are stored as UTC
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(timezone.utc).date()


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def get_analytics_data(self):
        total_sales = self.db.query(func.count(Order.id)).scalar() or 0
        total_revenue = self.db.query(func.sum(Order.total_amount)).scalar() or 0
        return {
            "users": self.db.query(func.count(User.id)).scalar() or 0,
            "products": self.db.query(func.count(Product.id)).scalar() or 0,
            "total_sales": total_sales,
            "total_revenue": DiscountCalculator.to_major(total_revenue),
        }

    def get_daily_sales(self, start_date: datetime, end_date: datetime):
        """One zero-filled bucket per calendar day, oldest first."""
        orders = self.db.query(Order.created_at, Order.total_amount)\
            .filter(Order.created_at >= start_date, Order.created_at <= end_date)\
            .all()

        buckets = {}
        day = start_date.date()
        while day <= end_date.date():
            buckets[day.isoformat()] = {"sales": 0, "revenue": 0}
            day += timedelta(days=1)

        for created_at, amount in orders:
            key = utc_date(created_at).isoformat()
            if key in buckets:
                buckets[key]["sales"] += 1
                buckets[key]["revenue"] += amount

        return [
            {"date": key, "sales": b["sales"], "revenue": DiscountCalculator.to_major(b["revenue"])}
            for key, b in buckets.items()
        ]

    def get_dashboard(self):
        end_date = datetime.now(timezone.utc)
        start_date = end_date - timedelta(days=CHART_DAYS)
        return {
            "analytics_data": self.get_analytics_data(),
            "chart_data": self.get_daily_sales(start_date, end_date),
        }
