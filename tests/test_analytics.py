from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shopdesk.services.analytics import (
    brand_of,
    brand_sales_series,
    calculate_sales_stats,
    calculate_trend,
    count_in_window,
    daily_sales_series,
    group_sales_by_brand,
    group_sales_by_date,
    monthly_average,
    prepare_sales,
    sales_overview,
    total_revenue,
    weekday_histogram,
)


def _sale(when, price, description="Apple iPhone 15"):
    if isinstance(when, datetime):
        when = when.isoformat().replace("+00:00", "Z")
    return {"date_sold": when, "sale_price": price, "item_description": description}


SCENARIO = [
    _sale("2024-03-04T09:00:00+03:00", 100000, "Apple iPhone 15"),
    _sale("2024-03-04T15:30:00+03:00", 50000, "Apple iPhone 15"),
    _sale("2024-03-05T11:00:00+03:00", 75000, "Samsung Galaxy"),
]

MIXED = [
    _sale("2024-02-27T08:15:00Z", "1250000.50", "Apple iPhone 13"),
    _sale("2024-02-27T21:45:00Z", 35000, "Oraimo Charger"),
    _sale("2024-02-28T10:00:00Z", Decimal("899999.99"), "Samsung Galaxy A54"),
    _sale("2024-03-01T12:00:00Z", "15,000", "Apple AirPods"),
    _sale("2024-03-02T23:59:00Z", 0, ""),
    _sale(None, 40000, "Tecno Spark"),
    _sale("not-a-date", 10000, "Infinix Hot"),
]


@pytest.mark.parametrize(
    "current, previous, expected",
    [(0, 0, 0), (5, 0, 100), (10, 5, 100), (5, 10, -50), (3, 4, -25)],
)
def test_calculate_trend(current, previous, expected):
    assert calculate_trend(current, previous) == pytest.approx(expected)


def test_per_day_series_for_scenario():
    assert daily_sales_series(SCENARIO) == [
        {"date": "2024-03-04", "count": 2, "revenue": Decimal("150000.00")},
        {"date": "2024-03-05", "count": 1, "revenue": Decimal("75000.00")},
    ]


def test_per_brand_series_sorted_by_count():
    assert brand_sales_series(SCENARIO) == [
        {"brand": "Apple", "count": 2, "revenue": Decimal("150000.00")},
        {"brand": "Samsung", "count": 1, "revenue": Decimal("75000.00")},
    ]


def test_brand_ties_keep_first_seen_order():
    sales = [
        _sale("2024-03-04T09:00:00Z", 1, "Tecno Spark"),
        _sale("2024-03-04T10:00:00Z", 1, "Infinix Hot"),
        _sale("2024-03-04T11:00:00Z", 1, "Infinix Note"),
        _sale("2024-03-04T12:00:00Z", 1, "Nokia 105"),
    ]
    assert [row["brand"] for row in brand_sales_series(sales)] == ["Infinix", "Tecno", "Nokia"]
    assert [row["brand"] for row in brand_sales_series(sales, limit=2)] == ["Infinix", "Tecno"]


def test_brand_heuristic_takes_first_word():
    assert brand_of("Google Pixel 8") == "Google"
    assert brand_of("  ") == "Unknown"
    assert brand_of("") == "Unknown"


def test_revenue_is_conserved_across_groupings():
    dated = prepare_sales(MIXED)
    expected = sum((sale.price for sale in dated), Decimal("0"))
    by_day = sum((row["revenue"] for row in group_sales_by_date(MIXED).values()), Decimal("0"))
    by_brand = sum((row["revenue"] for row in group_sales_by_brand(MIXED).values()), Decimal("0"))

    assert expected == Decimal("2200000.49")
    assert by_day == by_brand == total_revenue(MIXED) == expected


def test_undated_sales_are_excluded():
    assert len(prepare_sales(MIXED)) == 5
    assert "Unknown" in group_sales_by_brand(MIXED)
    assert "Tecno" not in group_sales_by_brand(MIXED)


def test_days_are_bucketed_in_local_time():
    # 21:45 UTC on the 27th is 00:45 on the 28th in UTC+3.
    days = group_sales_by_date(MIXED)
    assert days["2024-02-27"]["count"] == 1
    assert days["2024-02-28"]["count"] == 2
    assert days["2024-03-03"]["count"] == 1


def test_daily_series_keeps_latest_days():
    series = daily_sales_series(MIXED, limit=2)
    assert [row["date"] for row in series] == ["2024-03-01", "2024-03-03"]
    assert daily_sales_series(MIXED, limit=0) == []


def test_weekday_histogram_sums_to_sale_count():
    histogram = weekday_histogram(MIXED)
    assert [bucket["label"] for bucket in histogram] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert sum(bucket["count"] for bucket in histogram) == len(prepare_sales(MIXED))
    # 2024-03-03 is a Sunday in local time.
    assert histogram[0]["count"] == 1


def test_empty_ledger():
    assert daily_sales_series([]) == []
    assert brand_sales_series([]) == []
    assert total_revenue([]) == Decimal("0.00")
    assert monthly_average([]) == 0.0
    assert sum(bucket["count"] for bucket in weekday_histogram([])) == 0
    stats = calculate_sales_stats([], datetime(2024, 3, 1, tzinfo=timezone.utc))
    assert stats["weekly_sales"] == 0
    assert stats["weekly_trend"] == 0
    assert stats["monthly_trend"] == 0


def test_new_week_activity_reports_full_trend():
    now = datetime(2024, 3, 8, 12, 0, tzinfo=timezone.utc)
    stats = calculate_sales_stats(SCENARIO, now)
    assert stats["weekly_sales"] == 3
    assert stats["previous_weekly_sales"] == 0
    assert stats["weekly_trend"] == 100


def test_sales_stats_windows():
    now = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
    sales = [_sale(now - timedelta(days=offset), 1000) for offset in (1, 3, 10, 20, 35, 40)]
    stats = calculate_sales_stats(sales, now)

    assert stats["weekly_sales"] == 2
    assert stats["previous_weekly_sales"] == 1
    assert stats["weekly_trend"] == pytest.approx(100)
    assert stats["monthly_sales"] == 4
    assert stats["previous_monthly_sales"] == 2
    assert stats["monthly_trend"] == pytest.approx(100)
    assert stats["avg_daily_sales"] == pytest.approx(4 / 30)
    assert stats["avg_monthly_sales"] == pytest.approx(3.0)


def test_windows_are_half_open():
    now = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
    sales = [_sale(now, 1), _sale(now - timedelta(days=7), 1)]
    assert count_in_window(sales, now - timedelta(days=7), now) == 1
    assert count_in_window(sales, now - timedelta(days=14), now - timedelta(days=7)) == 0


def test_sales_overview_counts_today_in_local_time():
    now = datetime(2024, 3, 2, 22, 0, tzinfo=timezone.utc)  # 01:00 on the 3rd locally
    overview = sales_overview(MIXED, now)
    assert overview["sales_count"] == 5
    assert overview["today_count"] == 1
    assert overview["today_revenue"] == Decimal("0.00")
    assert overview["total_revenue"] == total_revenue(MIXED)
