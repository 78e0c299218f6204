"""Multi-step inventory, sale and loan writes.

A sale touches up to three tables (sales, devices or gadgets, warranties) and
the store commits each call on its own. ``WriteSequence`` records every
completed step together with the action that undoes it, so when a later step
fails the earlier ones are reverted in reverse order before ``WriteFailed``
is raised. Reverting is best effort: an undo that fails itself is logged and
the remaining undos still run.

Validation happens up front and raises ``ValidationFailed`` before anything
is written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ..core.errors import StoreError, ValidationFailed, WriteFailed
from ..schemas.inventory import DeviceCreate, GadgetCreate, SupplierCreate
from ..schemas.loans import LoanCreate, LoanSell
from ..schemas.sales import SaleCreate
from ..store import DataStore
from .formatting import parse_timestamp, to_local, validate_imei
from .records import generate_item_description
from .warranty import calculate_warranty_end_date, normalize_plan

logger = logging.getLogger(__name__)

Undo = Callable[[Any], None]


class WriteSequence:
    """Run store calls one after another and undo them if a later one fails."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._done: list[tuple[str, Undo | None, Any]] = []

    @property
    def completed(self) -> list[str]:
        return [name for name, _, _ in self._done]

    def step(self, name: str, action: Callable[[], Any], undo: Undo | None = None) -> Any:
        try:
            result = action()
        except StoreError as exc:
            self._fail(name, exc)
        self._done.append((name, undo, result))
        return result

    def _fail(self, name: str, exc: StoreError) -> None:
        completed = self.completed
        rolled_back: list[str] = []
        for done_name, undo, result in reversed(self._done):
            if undo is None:
                continue
            try:
                undo(result)
            except StoreError:
                logger.exception(
                    "write.undo_failed",
                    extra={"extra_data": {"operation": self.operation, "step": done_name}},
                )
            else:
                rolled_back.append(done_name)
        raise WriteFailed(
            self.operation,
            name,
            completed=completed,
            rolled_back=rolled_back,
            cause=exc,
        ) from exc


def iso_utc(now: datetime | None = None) -> str:
    moment = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _raise_if(errors: dict[str, str]) -> None:
    if errors:
        raise ValidationFailed(errors)


def _looks_like_imei(value: str) -> bool:
    return len(value) == 15 and value.isdigit()


# --------------------------------------------------------------- inventory


def add_supplier(store: DataStore, payload: SupplierCreate) -> dict[str, Any]:
    _raise_if({} if payload.name.strip() else {"name": "Supplier name is required"})
    return store.insert("suppliers", {"name": payload.name.strip(), "contact_info": payload.contact_info})


def add_device(store: DataStore, payload: DeviceCreate) -> dict[str, Any]:
    errors: dict[str, str] = {}
    identifier = payload.imei_serial.strip()
    if not identifier:
        errors["imei_serial"] = "IMEI/Serial is required"
    elif _looks_like_imei(identifier):
        if not validate_imei(identifier):
            errors["imei_serial"] = "Invalid IMEI format"
    elif len(identifier) < 6:
        errors["imei_serial"] = "Invalid serial number format (minimum 6 characters)"
    if not payload.brand.strip():
        errors["brand"] = "Brand is required"
    if not payload.model.strip():
        errors["model"] = "Model is required"
    _raise_if(errors)

    if store.fetch("devices", {"imei_serial": identifier}, limit=1):
        raise ValidationFailed({"imei_serial": "A device with this IMEI/Serial already exists"})

    row = payload.model_dump()
    row.update(
        imei_serial=identifier,
        brand=payload.brand.strip(),
        model=payload.model.strip(),
        warranty_plan=normalize_plan(payload.warranty_plan),
        status="available",
    )
    device = store.insert("devices", row)
    logger.info("device.added", extra={"extra_data": {"id": device["id"], "brand": device["brand"]}})
    return device


def add_gadget(store: DataStore, payload: GadgetCreate) -> dict[str, Any]:
    errors: dict[str, str] = {}
    if not payload.brand.strip():
        errors["brand"] = "Brand is required"
    if not payload.model.strip():
        errors["model"] = "Model is required"
    if payload.quantity < 1:
        errors["quantity"] = "Quantity must be at least 1"
    _raise_if(errors)

    row = payload.model_dump()
    row.update(brand=payload.brand.strip(), model=payload.model.strip())
    return store.insert("gadgets", row)


# ------------------------------------------------------------------- items


def _resolve_item(
    store: DataStore, item_type: str, item_id: int, quantity: int | None
) -> tuple[dict[str, Any], int | None]:
    """Load the chosen item and check it can leave the shelf."""

    if item_type == "device":
        device = store.get("devices", item_id)
        if device["status"] != "available":
            raise ValidationFailed({"item_id": f"Device is not available (status: {device['status']})"})
        return device, None

    gadget = store.get("gadgets", item_id)
    wanted = 1 if quantity is None else quantity
    if wanted < 1:
        raise ValidationFailed({"gadget_quantity": "Quantity must be at least 1"})
    if wanted > gadget["quantity"]:
        raise ValidationFailed({"gadget_quantity": f"Only {gadget['quantity']} in stock"})
    return gadget, wanted


def _device_plan(device: dict[str, Any]) -> str:
    try:
        return normalize_plan(device["warranty_plan"])
    except ValueError:
        raise ValidationFailed({"warranty_plan": f"Unknown warranty plan: {device['warranty_plan']!r}"}) from None


def _set_gadget_quantity(store: DataStore, gadget_id: int, delta: int) -> dict[str, Any]:
    # Re-read so concurrent changes since validation are not overwritten.
    current = store.get("gadgets", gadget_id)
    return store.update("gadgets", gadget_id, {"quantity": current["quantity"] + delta})


def _item_reference(item_type: str, item: dict[str, Any], quantity: int | None) -> dict[str, Any]:
    if item_type == "device":
        return {"device_id": item["id"], "gadget_id": None, "gadget_quantity": None}
    return {"device_id": None, "gadget_id": item["id"], "gadget_quantity": quantity}


# ------------------------------------------------------------------- sales


def create_sale(store: DataStore, payload: SaleCreate, now: datetime | None = None) -> dict[str, Any]:
    """Record an inventory sale, take the item off the shelf and issue a warranty."""

    _raise_if({} if payload.customer_name.strip() else {"customer_name": "Customer name is required"})
    item, quantity = _resolve_item(store, payload.item_type, payload.item_id, payload.gadget_quantity)
    plan = _device_plan(item) if payload.item_type == "device" else None
    sold_at = iso_utc(now)
    description = generate_item_description(item)

    seq = WriteSequence("create_sale")
    sale = seq.step(
        "insert_sale",
        lambda: store.insert(
            "sales",
            {
                "customer_name": payload.customer_name.strip(),
                "customer_id": payload.customer_id,
                "sale_type": payload.sale_type,
                "sale_price": payload.sale_price,
                "sale_source": "inventory",
                "item_description": description,
                "date_sold": sold_at,
                **_item_reference(payload.item_type, item, quantity),
            },
        ),
        undo=lambda row: store.delete("sales", row["id"]),
    )

    if payload.item_type == "gadget":
        seq.step(
            "decrement_gadget",
            lambda: _set_gadget_quantity(store, item["id"], -quantity),
            undo=lambda _: _set_gadget_quantity(store, item["id"], quantity),
        )
    else:
        seq.step(
            "mark_device_sold",
            lambda: store.update("devices", item["id"], {"status": "sold", "date_sold": sold_at}),
            undo=lambda _: store.update("devices", item["id"], {"status": "available", "date_sold": None}),
        )
        # Month arithmetic runs on the shop's local calendar.
        warranty_end = iso_utc(calculate_warranty_end_date(to_local(sold_at), plan))
        seq.step(
            "insert_warranty",
            lambda: store.insert(
                "warranties",
                {
                    "sale_id": sale["id"],
                    "device_id": item["id"],
                    "customer_name": sale["customer_name"],
                    "device_info": description,
                    "warranty_start_date": sold_at,
                    "warranty_end_date": warranty_end,
                    "warranty_duration": plan,
                },
            ),
        )

    logger.info(
        "sale.created",
        extra={"extra_data": {"sale_id": sale["sale_id"], "item_type": payload.item_type, "steps": seq.completed}},
    )
    return sale


# ------------------------------------------------------------------- loans


def create_loan(store: DataStore, payload: LoanCreate, now: datetime | None = None) -> dict[str, Any]:
    errors: dict[str, str] = {}
    if not payload.loaner_name.strip():
        errors["loaner_name"] = "Loaner name is required"
    if payload.expected_return_date and parse_timestamp(payload.expected_return_date) is None:
        errors["expected_return_date"] = "Invalid date"
    _raise_if(errors)

    item, quantity = _resolve_item(store, payload.item_type, payload.item_id, payload.gadget_quantity)
    loaned_at = iso_utc(now)

    seq = WriteSequence("create_loan")
    loan = seq.step(
        "insert_loan",
        lambda: store.insert(
            "loans",
            {
                "loaner_name": payload.loaner_name.strip(),
                "loaner_contact": payload.loaner_contact,
                "item_description": generate_item_description(item),
                "status": "active",
                "date_loaned": loaned_at,
                "expected_return_date": payload.expected_return_date,
                "notes": payload.notes,
                **_item_reference(payload.item_type, item, quantity),
            },
        ),
        undo=lambda row: store.delete("loans", row["id"]),
    )
    if payload.item_type == "gadget":
        seq.step("decrement_gadget", lambda: _set_gadget_quantity(store, item["id"], -quantity))
    else:
        seq.step(
            "mark_device_loaned",
            lambda: store.update("devices", item["id"], {"status": "loaned", "date_loaned": loaned_at}),
        )
    logger.info("loan.created", extra={"extra_data": {"loan_id": loan["loan_id"]}})
    return loan


def _active_loan(store: DataStore, loan_id: int, action: str) -> dict[str, Any]:
    loan = store.get("loans", loan_id)
    if loan["status"] != "active":
        raise ValidationFailed({"status": f"Only active loans can be {action} (status: {loan['status']})"})
    return loan


def return_loan(store: DataStore, loan_id: int, now: datetime | None = None) -> dict[str, Any]:
    loan = _active_loan(store, loan_id, "returned")
    returned_at = iso_utc(now)

    seq = WriteSequence("return_loan")
    updated = seq.step(
        "mark_loan_returned",
        lambda: store.update("loans", loan_id, {"status": "returned", "date_returned": returned_at}),
        undo=lambda _: store.update("loans", loan_id, {"status": "active", "date_returned": None}),
    )
    if loan["device_id"] is not None:
        seq.step(
            "restore_device",
            lambda: store.update("devices", loan["device_id"], {"status": "available", "date_loaned": None}),
        )
    elif loan["gadget_id"] is not None:
        seq.step(
            "restore_gadget_quantity",
            lambda: _set_gadget_quantity(store, loan["gadget_id"], loan["gadget_quantity"] or 1),
        )
    return updated


def sell_loan(
    store: DataStore, loan_id: int, payload: LoanSell, now: datetime | None = None
) -> dict[str, Any]:
    """Convert an active loan into a retail sale. Loan sales carry no warranty."""

    _raise_if({} if payload.customer_name.strip() else {"customer_name": "Customer name is required"})
    loan = _active_loan(store, loan_id, "sold")
    sold_at = iso_utc(now)

    seq = WriteSequence("sell_loan")
    sale = seq.step(
        "insert_sale",
        lambda: store.insert(
            "sales",
            {
                "customer_name": payload.customer_name.strip(),
                "sale_type": "retail",
                "sale_price": payload.sale_price,
                "sale_source": "loan",
                "item_description": loan["item_description"],
                "loan_id": loan["id"],
                "device_id": loan["device_id"],
                "gadget_id": loan["gadget_id"],
                "gadget_quantity": loan["gadget_quantity"],
                "date_sold": sold_at,
            },
        ),
        undo=lambda row: store.delete("sales", row["id"]),
    )
    seq.step(
        "mark_loan_sold",
        lambda: store.update("loans", loan_id, {"status": "sold", "date_returned": sold_at}),
        undo=lambda _: store.update("loans", loan_id, {"status": "active", "date_returned": None}),
    )
    # A sold gadget loan keeps its quantity off the shelf.
    if loan["device_id"] is not None:
        seq.step(
            "mark_device_sold",
            lambda: store.update("devices", loan["device_id"], {"status": "sold", "date_sold": sold_at}),
        )
    logger.info("loan.sold", extra={"extra_data": {"loan_id": loan["loan_id"], "sale_id": sale["sale_id"]}})
    return sale


__all__ = [
    "WriteSequence",
    "add_device",
    "add_gadget",
    "add_supplier",
    "create_loan",
    "create_sale",
    "iso_utc",
    "return_loan",
    "sell_loan",
]
