"""Warranty date arithmetic and live warranty status.

Nothing here is persisted: status is recomputed from the end date on every
read, so results move with the wall clock. Each function accepts ``now`` so
callers (and tests) can pin the clock.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from ..core.config import settings
from .formatting import parse_timestamp

PLAN_MONTHS = {
    "6_months": 6,
    "1_year": 12,
    "2_years": 24,
}

# Older device rows spell the plan out in words.
PLAN_ALIASES = {
    "six_months": "6_months",
    "one_year": "1_year",
    "two_years": "2_years",
}

STATUS_ACTIVE = "active"
STATUS_EXPIRING_SOON = "expiring_soon"
STATUS_EXPIRED = "expired"


def normalize_plan(plan: str) -> str:
    key = (plan or "").strip().lower()
    key = PLAN_ALIASES.get(key, key)
    if key not in PLAN_MONTHS:
        raise ValueError(f"unknown warranty plan: {plan!r}")
    return key


def add_months(start: date, months: int):
    """Calendar-aware month addition, clamped to the last day of the target month.

    Works for both ``date`` and ``datetime`` and keeps the time of day.
    """

    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def calculate_warranty_end_date(start: date, plan: str):
    return add_months(start, PLAN_MONTHS[normalize_plan(plan)])


def _now(now: datetime | None) -> datetime:
    return parse_timestamp(now) if now is not None else datetime.now(timezone.utc)


def is_warranty_active(end: Any, now: datetime | None = None) -> bool:
    end_dt = parse_timestamp(end)
    return end_dt is not None and end_dt > _now(now)


def get_warranty_days_remaining(end: Any, now: datetime | None = None) -> int:
    """Whole days left until ``end``; zero once expired or when unparseable."""

    end_dt = parse_timestamp(end)
    if end_dt is None:
        return 0
    return max(0, (end_dt - _now(now)).days)


def warranty_status(end: Any, now: datetime | None = None, expiring_days: int | None = None) -> str:
    window = settings.EXPIRING_SOON_DAYS if expiring_days is None else expiring_days
    now = _now(now)
    if not is_warranty_active(end, now):
        return STATUS_EXPIRED
    # Under one whole day left still counts as active.
    if 0 < get_warranty_days_remaining(end, now) <= window:
        return STATUS_EXPIRING_SOON
    return STATUS_ACTIVE


def summarize_warranties(
    rows: Iterable[Mapping[str, Any]], now: datetime | None = None
) -> dict[str, int]:
    now = _now(now)
    summary = {"total": 0, "active": 0, "expiring_soon": 0, "expired": 0}
    for row in rows:
        summary["total"] += 1
        status = warranty_status(row.get("warranty_end_date"), now)
        if status == STATUS_EXPIRED:
            summary["expired"] += 1
        else:
            # "active" counts every warranty still in force, expiring or not.
            summary["active"] += 1
            if status == STATUS_EXPIRING_SOON:
                summary["expiring_soon"] += 1
    return summary


__all__ = [
    "PLAN_MONTHS",
    "add_months",
    "calculate_warranty_end_date",
    "get_warranty_days_remaining",
    "is_warranty_active",
    "normalize_plan",
    "summarize_warranties",
    "warranty_status",
]
