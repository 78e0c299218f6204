from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

SaleType = Literal["retail", "trade_in", "wholesale"]
SaleSource = Literal["inventory", "loan", "trade_in"]
ItemType = Literal["device", "gadget"]


class SaleCreate(BaseModel):
    customer_name: str
    sale_type: SaleType = "retail"
    sale_price: Decimal = Field(ge=0)
    item_type: ItemType
    item_id: int
    gadget_quantity: Optional[int] = None
    customer_id: Optional[int] = None


class SaleOut(BaseModel):
    id: int
    sale_id: str
    customer_id: Optional[int] = None
    customer_name: str
    sale_type: str
    sale_price: Decimal
    sale_source: SaleSource
    device_id: Optional[int] = None
    gadget_id: Optional[int] = None
    gadget_quantity: Optional[int] = None
    item_description: str
    loan_id: Optional[int] = None
    date_sold: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class SalesSummary(BaseModel):
    window_days: int
    sales_count: int
    total_revenue: Decimal
    today_count: int
    today_revenue: Decimal
