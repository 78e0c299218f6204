"""View models returned by the dashboard endpoint."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .inventory import LowStockAlert


class DashboardStats(BaseModel):
    total_devices: int = 0
    total_gadgets: int = 0
    weekly_sales: int = 0
    monthly_sales: int = 0
    avg_daily_sales: float = 0.0
    avg_monthly_sales: float = 0.0
    weekly_trend: float = 0.0
    monthly_trend: float = 0.0


class SalesChartPoint(BaseModel):
    date: str
    count: int
    revenue: Decimal


class BrandSalesPoint(BaseModel):
    brand: str
    count: int
    revenue: Decimal


class WeekdayBucket(BaseModel):
    day: int
    label: str
    count: int


class DashboardView(BaseModel):
    stats: DashboardStats
    sales_chart: list[SalesChartPoint] = Field(default_factory=list)
    brand_chart: list[BrandSalesPoint] = Field(default_factory=list)
    weekday_performance: list[WeekdayBucket] = Field(default_factory=list)
    low_stock: list[LowStockAlert] = Field(default_factory=list)
    last_updated: datetime
