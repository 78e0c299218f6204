from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends

from ..deps import get_now, get_store
from ..schemas.loans import LoanCreate, LoanOut, LoanSell, LoanSummary
from ..schemas.sales import SaleOut
from ..services.dashboard import is_loan_overdue, loan_overview
from ..services.records import filter_by_status, get_status_color, search_items
from ..services.workflows import create_loan, return_loan, sell_loan
from ..store import DataStore

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])

LOAN_SEARCH_FIELDS = ("loan_id", "loaner_name", "loaner_contact", "item_description")


def _loan_out(row: dict[str, Any], now: datetime) -> LoanOut:
    overdue = is_loan_overdue(row, now)
    return LoanOut.model_validate(
        {
            **row,
            "overdue": overdue,
            "status_color": get_status_color("expired" if overdue else row.get("status")),
        }
    )


@router.get("", response_model=list[LoanOut])
def api_list_loans(
    status: Optional[Literal["all", "active", "returned", "sold"]] = None,
    q: Optional[str] = None,
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    rows = store.fetch("loans", order=("date_loaned", "desc"))
    rows = search_items(filter_by_status(rows, status), q, LOAN_SEARCH_FIELDS)
    return [_loan_out(row, now) for row in rows]


@router.get("/summary", response_model=LoanSummary)
def api_loan_summary(store: DataStore = Depends(get_store), now: datetime = Depends(get_now)):
    return loan_overview(store.fetch("loans"), now)


@router.post("", response_model=LoanOut, status_code=201)
def api_create_loan(
    payload: LoanCreate,
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    return _loan_out(create_loan(store, payload, now), now)


@router.post("/{loan_id}/return", response_model=LoanOut)
def api_return_loan(loan_id: int, store: DataStore = Depends(get_store), now: datetime = Depends(get_now)):
    return _loan_out(return_loan(store, loan_id, now), now)


@router.post("/{loan_id}/sell", response_model=SaleOut, status_code=201)
def api_sell_loan(
    loan_id: int,
    payload: LoanSell,
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    return sell_loan(store, loan_id, payload, now)
