from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

DeviceStatus = Literal["available", "loaned", "sold", "trade_in"]
WarrantyPlan = Literal["6_months", "1_year", "2_years"]


class SupplierCreate(BaseModel):
    name: str
    contact_info: Optional[dict[str, Any]] = None


class SupplierOut(SupplierCreate):
    id: int
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class DeviceCreate(BaseModel):
    imei_serial: str
    brand: str
    model: str
    capacity: Optional[str] = None
    color: Optional[str] = None
    warranty_plan: WarrantyPlan = "1_year"
    source: Optional[str] = None
    supplier_id: Optional[int] = None
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)


class DeviceOut(BaseModel):
    id: int
    imei_serial: str
    brand: str
    model: str
    capacity: Optional[str] = None
    color: Optional[str] = None
    warranty_plan: str
    source: Optional[str] = None
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    status: DeviceStatus
    status_color: str = ""
    device_type: str = "other"
    description: str = ""
    purchase_price: Optional[Decimal] = None
    date_added: str
    date_sold: Optional[str] = None
    date_loaned: Optional[str] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class GadgetCreate(BaseModel):
    brand: str
    model: str
    quantity: int = 1
    supplier_id: Optional[int] = None
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)


class GadgetOut(BaseModel):
    id: int
    inventory_id: str
    brand: str
    model: str
    quantity: int
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    description: str = ""
    purchase_price: Optional[Decimal] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class LowStockAlert(BaseModel):
    type: str
    brand: str
    model: str
    stock_count: int
    severity: Literal["critical", "warning"]
