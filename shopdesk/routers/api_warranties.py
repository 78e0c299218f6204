from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response

from ..deps import get_now, get_store
from ..schemas.warranty import WarrantyOut, WarrantySummary
from ..services.certificates import certificate_filename, render_certificate_pdf, render_certificate_text
from ..services.records import get_status_color, search_items
from ..services.warranty import (
    STATUS_EXPIRED,
    get_warranty_days_remaining,
    summarize_warranties,
    warranty_status,
)
from ..store import DataStore

router = APIRouter(prefix="/api/v1/warranties", tags=["warranties"])

WARRANTY_SEARCH_FIELDS = ("warranty_id", "customer_name", "device_info")


def _warranty_out(row: dict[str, Any], now: datetime) -> WarrantyOut:
    status = warranty_status(row["warranty_end_date"], now)
    return WarrantyOut.model_validate(
        {
            **row,
            "status": status,
            "status_color": get_status_color(status),
            "days_remaining": get_warranty_days_remaining(row["warranty_end_date"], now),
        }
    )


@router.get("", response_model=list[WarrantyOut])
def api_list_warranties(
    status: Literal["all", "active", "expired"] = "all",
    q: Optional[str] = None,
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    rows = search_items(store.fetch("warranties", order=("created_at", "desc")), q, WARRANTY_SEARCH_FIELDS)
    items = [_warranty_out(row, now) for row in rows]
    # "active" means still in force, which includes warranties about to expire.
    if status == "active":
        items = [item for item in items if item.status != STATUS_EXPIRED]
    elif status == "expired":
        items = [item for item in items if item.status == STATUS_EXPIRED]
    return items


@router.get("/summary", response_model=WarrantySummary)
def api_warranty_summary(store: DataStore = Depends(get_store), now: datetime = Depends(get_now)):
    return summarize_warranties(store.fetch("warranties"), now)


@router.get("/{warranty_id}/certificate")
def api_warranty_certificate(
    warranty_id: int,
    format: Literal["txt", "pdf"] = "txt",
    store: DataStore = Depends(get_store),
    now: datetime = Depends(get_now),
):
    warranty = store.get("warranties", warranty_id)
    headers = {"Content-Disposition": f'attachment; filename="{certificate_filename(warranty, format)}"'}
    if format == "pdf":
        return Response(render_certificate_pdf(warranty, now), media_type="application/pdf", headers=headers)
    return PlainTextResponse(render_certificate_text(warranty, now), headers=headers)
