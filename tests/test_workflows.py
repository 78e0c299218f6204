from datetime import datetime, timezone
from decimal import Decimal

import pytest

from shopdesk.core.errors import RecordNotFound, StoreError, ValidationFailed, WriteFailed
from shopdesk.schemas.inventory import DeviceCreate, GadgetCreate
from shopdesk.schemas.loans import LoanCreate, LoanSell
from shopdesk.schemas.sales import SaleCreate
from shopdesk.services.workflows import (
    WriteSequence,
    add_device,
    add_gadget,
    create_loan,
    create_sale,
    return_loan,
    sell_loan,
)
from shopdesk.store import DataStore

NOW = datetime(2024, 1, 31, 9, 30, tzinfo=timezone.utc)


@pytest.fixture()
def store(db_session):
    return DataStore(db_session)


@pytest.fixture()
def iphone(store):
    return add_device(
        store,
        DeviceCreate(imei_serial="356938035643809", brand="Apple", model="iPhone 15", capacity="128GB", warranty_plan="6_months"),
    )


@pytest.fixture()
def chargers(store):
    return add_gadget(store, GadgetCreate(brand="Oraimo", model="Charger", quantity=5))


class FailingStore(DataStore):
    """Fails the first call that matches ``(method, table)``."""

    def __init__(self, db, fail_on):
        super().__init__(db)
        self.fail_on = fail_on

    def insert(self, table, row):
        if self.fail_on == ("insert", table):
            raise StoreError("insert refused", table=table)
        return super().insert(table, row)

    def update(self, table, record_id, patch):
        if self.fail_on == ("update", table):
            raise StoreError("update refused", table=table)
        return super().update(table, record_id, patch)


def test_add_device_validates_identifier_and_names(store):
    with pytest.raises(ValidationFailed) as excinfo:
        add_device(store, DeviceCreate(imei_serial="ABC", brand=" ", model=""))
    assert set(excinfo.value.errors) == {"imei_serial", "brand", "model"}
    assert "minimum 6" in excinfo.value.errors["imei_serial"]
    assert store.fetch("devices") == []


def test_add_device_accepts_serial_numbers(store):
    device = add_device(store, DeviceCreate(imei_serial=" C02XK1ABJG5H ", brand="Apple", model="MacBook Air"))
    assert device["imei_serial"] == "C02XK1ABJG5H"
    assert device["status"] == "available"


def test_add_device_rejects_duplicates(store, iphone):
    with pytest.raises(ValidationFailed) as excinfo:
        add_device(store, DeviceCreate(imei_serial=iphone["imei_serial"], brand="Apple", model="iPhone 15"))
    assert "imei_serial" in excinfo.value.errors


def test_add_gadget_requires_positive_quantity(store):
    with pytest.raises(ValidationFailed) as excinfo:
        add_gadget(store, GadgetCreate(brand="Oraimo", model="Cable", quantity=0))
    assert excinfo.value.errors == {"quantity": "Quantity must be at least 1"}


def test_device_sale_marks_device_sold_and_issues_warranty(store, iphone):
    sale = create_sale(
        store,
        SaleCreate(customer_name="Amina", sale_price=Decimal("1850000"), item_type="device", item_id=iphone["id"]),
        NOW,
    )

    assert sale["sale_source"] == "inventory"
    assert sale["item_description"] == "Apple iPhone 15 128GB"
    assert sale["date_sold"] == "2024-01-31T09:30:00Z"
    device = store.get("devices", iphone["id"])
    assert device["status"] == "sold"
    assert device["date_sold"] == "2024-01-31T09:30:00Z"

    [warranty] = store.fetch("warranties")
    assert warranty["sale_id"] == sale["id"]
    assert warranty["warranty_duration"] == "6_months"
    assert warranty["warranty_start_date"] == "2024-01-31T09:30:00Z"
    assert warranty["warranty_end_date"] == "2024-07-31T09:30:00Z"
    assert warranty["warranty_id"].startswith("WRN-")


def test_warranty_end_follows_the_local_calendar(store, iphone):
    # 02:00 on 31 August in the shop, still 30 August in UTC.
    sold = datetime(2024, 8, 30, 23, 0, tzinfo=timezone.utc)
    create_sale(
        store,
        SaleCreate(customer_name="Amina", sale_price=1, item_type="device", item_id=iphone["id"]),
        sold,
    )
    [warranty] = store.fetch("warranties")
    assert warranty["warranty_end_date"] == "2025-02-27T23:00:00Z"


def test_unknown_device_plan_is_rejected_before_writes(store, iphone):
    store.update("devices", iphone["id"], {"warranty_plan": "lifetime"})
    with pytest.raises(ValidationFailed) as excinfo:
        create_sale(store, SaleCreate(customer_name="Amina", sale_price=1, item_type="device", item_id=iphone["id"]), NOW)
    assert "warranty_plan" in excinfo.value.errors
    assert store.fetch("sales") == []
    assert store.get("devices", iphone["id"])["status"] == "available"



def test_gadget_sale_decrements_stock_without_warranty(store, chargers):
    create_sale(
        store,
        SaleCreate(customer_name="Juma", sale_price=30000, item_type="gadget", item_id=chargers["id"], gadget_quantity=2),
        NOW,
    )
    assert store.get("gadgets", chargers["id"])["quantity"] == 3
    assert store.fetch("warranties") == []


def test_sale_validation_happens_before_writes(store, iphone, chargers):
    with pytest.raises(ValidationFailed):
        create_sale(store, SaleCreate(customer_name=" ", sale_price=1, item_type="device", item_id=iphone["id"]))
    with pytest.raises(ValidationFailed) as excinfo:
        create_sale(
            store,
            SaleCreate(customer_name="Juma", sale_price=1, item_type="gadget", item_id=chargers["id"], gadget_quantity=6),
        )
    assert excinfo.value.errors == {"gadget_quantity": "Only 5 in stock"}
    with pytest.raises(RecordNotFound):
        create_sale(store, SaleCreate(customer_name="Juma", sale_price=1, item_type="device", item_id=999))
    assert store.fetch("sales") == []


def test_sold_device_cannot_be_sold_again(store, iphone):
    payload = SaleCreate(customer_name="Amina", sale_price=1, item_type="device", item_id=iphone["id"])
    create_sale(store, payload, NOW)
    with pytest.raises(ValidationFailed):
        create_sale(store, payload, NOW)
    assert len(store.fetch("sales")) == 1


def test_failed_warranty_step_rolls_back_sale_and_device(db_session, iphone):
    store = FailingStore(db_session, ("insert", "warranties"))
    with pytest.raises(WriteFailed) as excinfo:
        create_sale(
            store,
            SaleCreate(customer_name="Amina", sale_price=1000, item_type="device", item_id=iphone["id"]),
            NOW,
        )

    failure = excinfo.value
    assert failure.step == "insert_warranty"
    assert failure.completed == ["insert_sale", "mark_device_sold"]
    assert failure.rolled_back == ["mark_device_sold", "insert_sale"]
    assert isinstance(failure.cause, StoreError)
    assert store.fetch("sales") == []
    assert store.get("devices", iphone["id"])["status"] == "available"
    assert store.get("devices", iphone["id"])["date_sold"] is None


def test_failed_stock_update_rolls_back_sale(db_session, chargers):
    store = FailingStore(db_session, ("update", "gadgets"))
    with pytest.raises(WriteFailed) as excinfo:
        create_sale(
            store,
            SaleCreate(customer_name="Juma", sale_price=1000, item_type="gadget", item_id=chargers["id"], gadget_quantity=1),
            NOW,
        )
    assert excinfo.value.rolled_back == ["insert_sale"]
    assert store.fetch("sales") == []
    assert store.get("gadgets", chargers["id"])["quantity"] == 5


def test_write_sequence_continues_when_an_undo_fails():
    undone = []

    def broken_undo(_):
        raise StoreError("gone")

    seq = WriteSequence("demo")
    seq.step("first", lambda: 1, undo=lambda result: undone.append(("first", result)))
    seq.step("second", lambda: 2, undo=broken_undo)

    def fail():
        raise StoreError("boom")

    with pytest.raises(WriteFailed) as excinfo:
        seq.step("third", fail)
    assert undone == [("first", 1)]
    assert excinfo.value.completed == ["first", "second"]
    assert excinfo.value.rolled_back == ["first"]


def test_device_loan_round_trip(store, iphone):
    loan = create_loan(
        store,
        LoanCreate(loaner_name="Baraka Phones", item_type="device", item_id=iphone["id"], expected_return_date="2024-02-07"),
        NOW,
    )
    assert loan["status"] == "active"
    assert loan["loan_id"].startswith("LOAN-")
    assert store.get("devices", iphone["id"])["status"] == "loaned"

    returned = return_loan(store, loan["id"], NOW)
    assert returned["status"] == "returned"
    assert returned["date_returned"] == "2024-01-31T09:30:00Z"
    assert store.get("devices", iphone["id"])["status"] == "available"

    with pytest.raises(ValidationFailed):
        return_loan(store, loan["id"], NOW)


def test_gadget_return_adds_back_to_current_stock(store, chargers):
    loan = create_loan(
        store,
        LoanCreate(loaner_name="Baraka Phones", item_type="gadget", item_id=chargers["id"], gadget_quantity=3),
        NOW,
    )
    assert store.get("gadgets", chargers["id"])["quantity"] == 2
    # Stock changed while the loan was out.
    store.update("gadgets", chargers["id"], {"quantity": 7})

    return_loan(store, loan["id"], NOW)
    assert store.get("gadgets", chargers["id"])["quantity"] == 10


def test_selling_a_loan_creates_a_loan_sale_without_warranty(store, iphone):
    loan = create_loan(store, LoanCreate(loaner_name="Baraka Phones", item_type="device", item_id=iphone["id"]), NOW)
    sale = sell_loan(store, loan["id"], LoanSell(customer_name="Neema", sale_price=Decimal("1700000")), NOW)

    assert sale["sale_source"] == "loan"
    assert sale["sale_type"] == "retail"
    assert sale["loan_id"] == loan["id"]
    assert sale["item_description"] == loan["item_description"]
    assert store.get("loans", loan["id"])["status"] == "sold"
    assert store.get("devices", iphone["id"])["status"] == "sold"
    assert store.fetch("warranties") == []

    with pytest.raises(ValidationFailed):
        sell_loan(store, loan["id"], LoanSell(customer_name="Neema", sale_price=1), NOW)
    with pytest.raises(ValidationFailed):
        return_loan(store, loan["id"], NOW)


def test_sold_gadget_loan_keeps_stock_reduced(store, chargers):
    loan = create_loan(
        store,
        LoanCreate(loaner_name="Baraka Phones", item_type="gadget", item_id=chargers["id"], gadget_quantity=2),
        NOW,
    )
    sale = sell_loan(store, loan["id"], LoanSell(customer_name="Neema", sale_price=20000), NOW)
    assert sale["gadget_quantity"] == 2
    assert store.get("gadgets", chargers["id"])["quantity"] == 3


def test_failed_loan_status_update_removes_loan_sale(db_session, iphone):
    store = DataStore(db_session)
    loan = create_loan(store, LoanCreate(loaner_name="Baraka Phones", item_type="device", item_id=iphone["id"]), NOW)

    failing = FailingStore(db_session, ("update", "loans"))
    with pytest.raises(WriteFailed) as excinfo:
        sell_loan(failing, loan["id"], LoanSell(customer_name="Neema", sale_price=1), NOW)
    assert excinfo.value.step == "mark_loan_sold"
    assert failing.fetch("sales") == []
    assert failing.get("loans", loan["id"])["status"] == "active"
