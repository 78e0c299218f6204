"""Turn a raw sales ledger into dashboard KPIs and chart series.

Every function takes plain sale rows (mappings with at least ``date_sold``,
``sale_price`` and ``item_description``) plus, where time matters, a ``now``
instant. Inputs are never mutated and an empty ledger always produces empty
or zero results.

Revenue is accumulated as ``Decimal`` quantised to cents, so grouping the
same sales by day, by brand or not at all yields exactly the same total.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from .formatting import parse_timestamp, to_decimal, to_local

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
WEEK = timedelta(days=7)
MONTH = timedelta(days=30)
# Daily average divides by a fixed 30, not by the days actually elapsed.
DAILY_AVERAGE_DIVISOR = 30
UNKNOWN_BRAND = "Unknown"
WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class DatedSale:
    """A sale reduced to what aggregation needs, with its local timestamp."""

    when: datetime
    price: Decimal
    description: str


def _quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def prepare_sales(sales: Iterable[Mapping[str, Any]]) -> list[DatedSale]:
    """Parse timestamps and prices once; rows without a usable date are dropped."""

    prepared: list[DatedSale] = []
    skipped = 0
    for sale in sales:
        when = to_local(sale.get("date_sold"))
        if when is None:
            skipped += 1
            continue
        prepared.append(
            DatedSale(
                when=when,
                price=_quantize_currency(to_decimal(sale.get("sale_price"))),
                description=str(sale.get("item_description") or ""),
            )
        )
    if skipped:
        logger.warning("analytics.skipped_undated_sales", extra={"extra_data": {"count": skipped}})
    return prepared


def _as_prepared(sales: Iterable[Any]) -> list[DatedSale]:
    items = list(sales)
    if items and all(isinstance(item, DatedSale) for item in items):
        return items
    return prepare_sales(items)


def calculate_trend(current: float, previous: float) -> float:
    """Percentage change versus the previous period.

    A previous value of zero reports 100 for new activity and 0 for none,
    instead of dividing by zero.
    """

    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def count_in_window(sales: Iterable[Any], start: datetime, end: datetime) -> int:
    """Number of sales dated in ``[start, end)``."""

    start, end = parse_timestamp(start), parse_timestamp(end)
    return sum(1 for sale in _as_prepared(sales) if start <= sale.when < end)


def period_counts(sales: Iterable[Any], now: datetime) -> dict[str, int]:
    prepared = _as_prepared(sales)
    now = parse_timestamp(now)
    week_start = now - WEEK
    month_start = now - MONTH
    return {
        "weekly": count_in_window(prepared, week_start, now),
        "previous_weekly": count_in_window(prepared, week_start - WEEK, week_start),
        "monthly": count_in_window(prepared, month_start, now),
        "previous_monthly": count_in_window(prepared, month_start - MONTH, month_start),
    }


def month_key(when: datetime) -> str:
    return when.strftime("%Y-%m")


def monthly_average(sales: Iterable[Any]) -> float:
    """Total sales divided by the number of distinct calendar months present."""

    months = Counter(month_key(sale.when) for sale in _as_prepared(sales))
    if not months:
        return 0.0
    return sum(months.values()) / len(months)


def calculate_sales_stats(sales: Iterable[Any], now: datetime) -> dict[str, float | int]:
    prepared = _as_prepared(sales)
    counts = period_counts(prepared, now)
    return {
        "weekly_sales": counts["weekly"],
        "monthly_sales": counts["monthly"],
        "previous_weekly_sales": counts["previous_weekly"],
        "previous_monthly_sales": counts["previous_monthly"],
        "avg_daily_sales": counts["monthly"] / DAILY_AVERAGE_DIVISOR,
        "avg_monthly_sales": monthly_average(prepared),
        "weekly_trend": calculate_trend(counts["weekly"], counts["previous_weekly"]),
        "monthly_trend": calculate_trend(counts["monthly"], counts["previous_monthly"]),
    }


def brand_of(description: str) -> str:
    """First whitespace-delimited token of an item description.

    This is a naming heuristic, not a lookup: "Google Pixel 8" groups under
    "Google", but a two-word brand is split.
    """

    tokens = (description or "").split()
    return tokens[0] if tokens else UNKNOWN_BRAND


def _group(prepared: list[DatedSale], key) -> dict[str, dict[str, Any]]:
    groups: dict[str, dict[str, Any]] = {}
    for sale in prepared:
        bucket = groups.setdefault(key(sale), {"count": 0, "revenue": Decimal("0.00")})
        bucket["count"] += 1
        bucket["revenue"] += sale.price
    return groups


def group_sales_by_date(sales: Iterable[Any]) -> dict[str, dict[str, Any]]:
    return _group(_as_prepared(sales), lambda sale: sale.when.date().isoformat())


def group_sales_by_brand(sales: Iterable[Any]) -> dict[str, dict[str, Any]]:
    return _group(_as_prepared(sales), lambda sale: brand_of(sale.description))


def daily_sales_series(sales: Iterable[Any], limit: int | None = 14) -> list[dict[str, Any]]:
    """``{date, count, revenue}`` rows in date order, keeping the latest ``limit``."""

    rows = [
        {"date": day, "count": data["count"], "revenue": data["revenue"]}
        for day, data in sorted(group_sales_by_date(sales).items())
    ]
    if limit is not None:
        rows = rows[-limit:] if limit > 0 else []
    return rows


def brand_sales_series(sales: Iterable[Any], limit: int | None = 6) -> list[dict[str, Any]]:
    """``{brand, count, revenue}`` rows, busiest brand first, top ``limit`` kept."""

    rows = [
        {"brand": brand, "count": data["count"], "revenue": data["revenue"]}
        for brand, data in group_sales_by_brand(sales).items()
    ]
    rows.sort(key=lambda row: row["count"], reverse=True)
    if limit is not None:
        rows = rows[:limit]
    return rows


def weekday_histogram(sales: Iterable[Any]) -> list[dict[str, Any]]:
    """Seven buckets, Sunday (0) through Saturday (6)."""

    counts = [0] * 7
    for sale in _as_prepared(sales):
        # datetime.weekday() is Monday=0; shift so Sunday=0.
        counts[(sale.when.weekday() + 1) % 7] += 1
    return [
        {"day": index, "label": WEEKDAY_LABELS[index], "count": counts[index]}
        for index in range(7)
    ]


def total_revenue(sales: Iterable[Any]) -> Decimal:
    return sum((sale.price for sale in _as_prepared(sales)), Decimal("0.00"))


def sales_overview(sales: Iterable[Any], now: datetime) -> dict[str, Any]:
    """Header figures for the sales listing: totals plus today's activity."""

    prepared = _as_prepared(sales)
    today = to_local(now).date()
    todays = [sale for sale in prepared if sale.when.date() == today]
    return {
        "sales_count": len(prepared),
        "total_revenue": total_revenue(prepared),
        "today_count": len(todays),
        "today_revenue": total_revenue(todays),
    }


__all__ = [
    "DatedSale",
    "brand_of",
    "brand_sales_series",
    "calculate_sales_stats",
    "calculate_trend",
    "count_in_window",
    "daily_sales_series",
    "group_sales_by_brand",
    "group_sales_by_date",
    "monthly_average",
    "period_counts",
    "prepare_sales",
    "sales_overview",
    "total_revenue",
    "weekday_histogram",
]
