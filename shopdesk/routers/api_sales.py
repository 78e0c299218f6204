from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..deps import get_now, get_store
from ..schemas.sales import SaleCreate, SaleOut, SalesSummary
from ..services.analytics import sales_overview
from ..services.dashboard import sales_since
from ..services.records import search_items
from ..services.workflows import create_sale
from ..store import DataStore

router = APIRouter(prefix="/api/v1/sales", tags=["sales"])

MAX_WINDOW_DAYS = 3650
SALE_SEARCH_FIELDS = ("sale_id", "customer_name", "item_description")


def _recent_sales(store: DataStore, now: datetime, days: int) -> list[dict]:
    return store.fetch(
        "sales",
        {"date_sold": ("gte", sales_since(now, days))},
        order=("date_sold", "desc"),
    )


@router.get("", response_model=list[SaleOut])
def api_list_sales(
    days: int = Query(default=settings.SALES_PAGE_WINDOW_DAYS, ge=1, le=MAX_WINDOW_DAYS),
    q: Optional[str] = None,
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    return search_items(_recent_sales(store, now, days), q, SALE_SEARCH_FIELDS)


@router.get("/summary", response_model=SalesSummary)
def api_sales_summary(
    days: int = Query(default=settings.SALES_PAGE_WINDOW_DAYS, ge=1, le=MAX_WINDOW_DAYS),
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    return SalesSummary(window_days=days, **sales_overview(_recent_sales(store, now, days), now))


@router.post("", response_model=SaleOut, status_code=201)
def api_create_sale(
    payload: SaleCreate,
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    return create_sale(store, payload, now)
