from __future__ import annotations

from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends

from ..core.config import settings
from ..deps import get_store
from ..schemas.inventory import (
    DeviceCreate,
    DeviceOut,
    GadgetCreate,
    GadgetOut,
    LowStockAlert,
    SupplierCreate,
    SupplierOut,
)
from ..services.dashboard import classify_low_stock
from ..services.formatting import get_device_type
from ..services.records import (
    filter_by_status,
    generate_item_description,
    get_status_color,
    search_items,
    sort_items,
)
from ..services.workflows import add_device, add_gadget, add_supplier
from ..store import DataStore

router = APIRouter(prefix="/api/v1", tags=["inventory"])

DEVICE_SEARCH_FIELDS = ("imei_serial", "brand", "model", "capacity", "color", "supplier_name")
GADGET_SEARCH_FIELDS = ("inventory_id", "brand", "model", "supplier_name")


def _device_out(row: dict[str, Any]) -> DeviceOut:
    return DeviceOut.model_validate(
        {
            **row,
            "status_color": get_status_color(row.get("status")),
            "device_type": get_device_type(row.get("model") or ""),
            "description": generate_item_description(row),
        }
    )


def _gadget_out(row: dict[str, Any]) -> GadgetOut:
    return GadgetOut.model_validate({**row, "description": generate_item_description(row)})


@router.get("/devices", response_model=list[DeviceOut])
def api_list_devices(
    status: Optional[str] = None,
    q: Optional[str] = None,
    sort: str = "date_added",
    direction: Literal["asc", "desc"] = "desc",
    store: DataStore = Depends(get_store),
):
    rows = filter_by_status(store.fetch("devices"), status)
    rows = search_items(rows, q, DEVICE_SEARCH_FIELDS)
    return [_device_out(row) for row in sort_items(rows, sort, direction)]


@router.post("/devices", response_model=DeviceOut, status_code=201)
def api_add_device(payload: DeviceCreate, store: DataStore = Depends(get_store)):
    return _device_out(add_device(store, payload))


@router.get("/gadgets", response_model=list[GadgetOut])
def api_list_gadgets(
    q: Optional[str] = None,
    sort: str = "created_at",
    direction: Literal["asc", "desc"] = "desc",
    in_stock: bool = False,
    store: DataStore = Depends(get_store),
):
    filters = {"quantity": ("gt", 0)} if in_stock else None
    rows = search_items(store.fetch("gadgets", filters), q, GADGET_SEARCH_FIELDS)
    return [_gadget_out(row) for row in sort_items(rows, sort, direction)]


@router.post("/gadgets", response_model=GadgetOut, status_code=201)
def api_add_gadget(payload: GadgetCreate, store: DataStore = Depends(get_store)):
    return _gadget_out(add_gadget(store, payload))


@router.get("/suppliers", response_model=list[SupplierOut])
def api_list_suppliers(store: DataStore = Depends(get_store)):
    return store.fetch("suppliers", order=("name", "asc"))


@router.post("/suppliers", response_model=SupplierOut, status_code=201)
def api_add_supplier(payload: SupplierCreate, store: DataStore = Depends(get_store)):
    return add_supplier(store, payload)


@router.get("/inventory/low-stock", response_model=list[LowStockAlert])
def api_low_stock(store: DataStore = Depends(get_store)):
    return classify_low_stock(store.low_stock_rows(settings.LOW_STOCK_THRESHOLD))
