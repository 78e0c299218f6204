from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

LoanStatus = Literal["active", "returned", "sold"]


class LoanCreate(BaseModel):
    loaner_name: str
    loaner_contact: Optional[str] = None
    item_type: Literal["device", "gadget"]
    item_id: int
    gadget_quantity: Optional[int] = None
    expected_return_date: Optional[str] = None
    notes: Optional[str] = None


class LoanSell(BaseModel):
    customer_name: str
    sale_price: Decimal = Field(ge=0)


class LoanOut(BaseModel):
    id: int
    loan_id: str
    loaner_name: str
    loaner_contact: Optional[str] = None
    device_id: Optional[int] = None
    gadget_id: Optional[int] = None
    gadget_quantity: Optional[int] = None
    item_description: str
    status: LoanStatus
    status_color: str = ""
    overdue: bool = False
    date_loaned: str
    date_returned: Optional[str] = None
    expected_return_date: Optional[str] = None
    notes: Optional[str] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class LoanSummary(BaseModel):
    total: int
    active: int
    overdue: int
    returned: int
    sold: int
