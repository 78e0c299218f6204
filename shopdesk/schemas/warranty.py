from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

WarrantyState = Literal["active", "expiring_soon", "expired"]


class WarrantyOut(BaseModel):
    id: int
    warranty_id: str
    sale_id: int
    device_id: int
    customer_name: str
    device_info: str
    warranty_start_date: str
    warranty_end_date: str
    warranty_duration: str
    status: WarrantyState
    status_color: str
    days_remaining: int
    created_at: str
    updated_at: str


class WarrantySummary(BaseModel):
    total: int
    active: int
    expiring_soon: int
    expired: int
