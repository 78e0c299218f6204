"""Compose the dashboard view model from inventory, sales and stock rows.

``build_dashboard`` is pure. ``load_dashboard`` does the I/O: it issues the
four fetches concurrently, each on its own worker thread and session, and
only builds the view once all of them have succeeded. One failed fetch fails
the whole cycle, so a partial dashboard is never produced.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..schemas.dashboard import (
    BrandSalesPoint,
    DashboardStats,
    DashboardView,
    SalesChartPoint,
    WeekdayBucket,
)
from ..schemas.inventory import LowStockAlert
from ..store import DataStore
from . import analytics
from .formatting import parse_timestamp

logger = logging.getLogger(__name__)


def count_available_devices(devices: Iterable[Mapping[str, Any]]) -> int:
    return sum(1 for device in devices if device.get("status") == "available")


def total_gadget_quantity(gadgets: Iterable[Mapping[str, Any]]) -> int:
    return sum(int(gadget.get("quantity") or 0) for gadget in gadgets)


def classify_low_stock(
    rows: Iterable[Mapping[str, Any]], critical_level: int | None = None
) -> list[LowStockAlert]:
    """Tag each pre-filtered low-stock row and put critical rows first."""

    level = settings.CRITICAL_STOCK_LEVEL if critical_level is None else critical_level
    alerts = [
        LowStockAlert(
            type=row["type"],
            brand=row["brand"],
            model=row["model"],
            stock_count=int(row["stock_count"]),
            severity="critical" if int(row["stock_count"]) <= level else "warning",
        )
        for row in rows
    ]
    alerts.sort(key=lambda alert: (alert.severity != "critical", alert.stock_count))
    return alerts


def build_dashboard(
    devices: Sequence[Mapping[str, Any]],
    gadgets: Sequence[Mapping[str, Any]],
    sales: Sequence[Mapping[str, Any]],
    low_stock: Sequence[Mapping[str, Any]],
    now: datetime | None = None,
    *,
    chart_days: int | None = None,
    chart_brands: int | None = None,
) -> DashboardView:
    now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    prepared = analytics.prepare_sales(sales)
    stats = analytics.calculate_sales_stats(prepared, now)

    return DashboardView(
        stats=DashboardStats(
            total_devices=count_available_devices(devices),
            total_gadgets=total_gadget_quantity(gadgets),
            weekly_sales=stats["weekly_sales"],
            monthly_sales=stats["monthly_sales"],
            avg_daily_sales=stats["avg_daily_sales"],
            avg_monthly_sales=stats["avg_monthly_sales"],
            weekly_trend=stats["weekly_trend"],
            monthly_trend=stats["monthly_trend"],
        ),
        sales_chart=[
            SalesChartPoint(**row)
            for row in analytics.daily_sales_series(
                prepared, limit=settings.CHART_DAYS if chart_days is None else chart_days
            )
        ],
        brand_chart=[
            BrandSalesPoint(**row)
            for row in analytics.brand_sales_series(
                prepared, limit=settings.CHART_BRANDS if chart_brands is None else chart_brands
            )
        ],
        weekday_performance=[WeekdayBucket(**row) for row in analytics.weekday_histogram(prepared)],
        low_stock=classify_low_stock(low_stock),
        last_updated=now,
    )


def is_loan_overdue(loan: Mapping[str, Any], now: datetime | None = None) -> bool:
    if loan.get("status") != "active":
        return False
    expected = parse_timestamp(loan.get("expected_return_date"))
    if expected is None:
        return False
    current = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    return expected < current


def loan_overview(loans: Iterable[Mapping[str, Any]], now: datetime | None = None) -> dict[str, int]:
    summary = {"total": 0, "active": 0, "overdue": 0, "returned": 0, "sold": 0}
    for loan in loans:
        summary["total"] += 1
        status = loan.get("status")
        if status in ("active", "returned", "sold"):
            summary[status] += 1
        if is_loan_overdue(loan, now):
            summary["overdue"] += 1
    return summary


def _with_store(session_factory: Callable[[], Session], read: Callable[[DataStore], Any]) -> Any:
    db = session_factory()
    try:
        return read(DataStore(db))
    finally:
        db.close()


def sales_since(now: datetime, days: int) -> str:
    since = now.astimezone(timezone.utc) - timedelta(days=days)
    return since.isoformat(timespec="seconds").replace("+00:00", "Z")


async def load_dashboard(
    session_factory: Callable[[], Session], now: datetime | None = None
) -> DashboardView:
    now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    since = sales_since(now, settings.SALES_WINDOW_DAYS)

    def run(read: Callable[[DataStore], Any]):
        return asyncio.to_thread(_with_store, session_factory, read)

    devices, gadgets, sales, low_stock = await asyncio.gather(
        run(lambda store: store.fetch("devices")),
        run(lambda store: store.fetch("gadgets")),
        run(lambda store: store.fetch("sales", {"date_sold": ("gte", since)}, order=("date_sold", "desc"))),
        run(lambda store: store.low_stock_rows(settings.LOW_STOCK_THRESHOLD)),
    )
    logger.info(
        "dashboard.loaded",
        extra={"extra_data": {"devices": len(devices), "gadgets": len(gadgets), "sales": len(sales)}},
    )
    return build_dashboard(devices, gadgets, sales, low_stock, now)


__all__ = [
    "build_dashboard",
    "classify_low_stock",
    "count_available_devices",
    "is_loan_overdue",
    "load_dashboard",
    "loan_overview",
    "total_gadget_quantity",
]
