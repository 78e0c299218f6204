"""Generic row store over SQLAlchemy.

Everything above this module sees the database as a handful of named tables
reachable through ``fetch``, ``insert`` and ``update``. Rows go in and come
out as plain dicts. Each call commits on its own; there is no transaction
spanning several calls, so multi-step writes are not atomic.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
from uuid import uuid4

from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .core.errors import RecordNotFound, StoreError
from .models.customer import Customer
from .models.device import Device
from .models.gadget import Gadget
from .models.loan import Loan
from .models.sale import Sale
from .models.supplier import Supplier
from .models.warranty import Warranty

logger = logging.getLogger(__name__)

TABLES = {
    "suppliers": Supplier,
    "customers": Customer,
    "devices": Device,
    "gadgets": Gadget,
    "sales": Sale,
    "loans": Loan,
    "warranties": Warranty,
}

# Human-readable reference codes filled in on insert when the caller omits them.
REFERENCE_CODES = {
    "gadgets": ("inventory_id", "GAD"),
    "sales": ("sale_id", "SALE"),
    "loans": ("loan_id", "LOAN"),
    "warranties": ("warranty_id", "WRN"),
}

# Business timestamps defaulted to "now" on insert.
DEFAULT_TIMESTAMPS = {
    "devices": ("date_added",),
    "sales": ("date_sold",),
    "loans": ("date_loaned",),
    "warranties": ("warranty_start_date",),
}

OPERATORS = {
    "eq": lambda column, value: column.is_(None) if value is None else column == value,
    "ne": lambda column, value: column.is_not(None) if value is None else column != value,
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "in": lambda column, value: column.in_(list(value)),
}

# Joined attributes exposed as explicit optional fields on fetched rows.
JOINED_FIELDS = {
    "devices": ("supplier_name",),
    "gadgets": ("supplier_name",),
}


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def make_reference(prefix: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{prefix}-{stamp}-{uuid4().hex[:6].upper()}"


class DataStore:
    """Table-oriented access used by services, routers and the dashboard."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------ reads
    def fetch(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        order: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return rows of ``table`` matching every filter.

        ``filters`` maps a column to a value (equality) or to an
        ``(operator, value)`` pair. ``order`` is ``(column, "asc"|"desc")``.
        """

        model = self._model(table)
        stmt = select(model)
        for name, condition in (filters or {}).items():
            column = self._column(model, table, name)
            if isinstance(condition, tuple):
                op, value = condition
                if op not in OPERATORS:
                    raise ValueError(f"unsupported filter operator: {op}")
            else:
                op, value = "eq", condition
            stmt = stmt.where(OPERATORS[op](column, value))
        if order:
            name, direction = order
            column = self._column(model, table, name)
            stmt = stmt.order_by(desc(column) if direction == "desc" else asc(column), model.id)
        else:
            stmt = stmt.order_by(model.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            records = self.db.execute(stmt).unique().scalars().all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store.fetch failed", extra={"extra_data": {"table": table}})
            raise StoreError(f"could not fetch {table}", table=table) from exc
        return [self._to_row(table, record) for record in records]

    def get(self, table: str, record_id: int) -> dict[str, Any]:
        rows = self.fetch(table, {"id": record_id}, limit=1)
        if not rows:
            raise RecordNotFound(table, record_id)
        return rows[0]

    def low_stock_rows(self, threshold: int) -> list[dict[str, Any]]:
        """Device models and gadget rows whose stock is below ``threshold``."""

        device_stmt = (
            select(Device.brand, Device.model, func.count(Device.id).label("stock_count"))
            .where(Device.status == "available")
            .group_by(Device.brand, Device.model)
            .having(func.count(Device.id) < threshold)
        )
        gadget_stmt = select(Gadget.brand, Gadget.model, Gadget.quantity).where(Gadget.quantity < threshold)
        try:
            device_rows = self.db.execute(device_stmt).all()
            gadget_rows = self.db.execute(gadget_stmt).all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store.low_stock failed")
            raise StoreError("could not fetch low stock rows", table="low_stock") from exc

        rows = [
            {"type": "device", "brand": row.brand, "model": row.model, "stock_count": int(row.stock_count)}
            for row in device_rows
        ]
        rows.extend(
            {"type": "gadget", "brand": row.brand, "model": row.model, "stock_count": int(row.quantity or 0)}
            for row in gadget_rows
        )
        rows.sort(key=lambda row: (row["stock_count"], row["brand"], row["model"]))
        return rows

    # ----------------------------------------------------------------- writes
    def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        model = self._model(table)
        data = self._known_columns(model, row)
        now = utcnow_iso()
        data.setdefault("created_at", now)
        data.setdefault("updated_at", now)
        for name in DEFAULT_TIMESTAMPS.get(table, ()):
            if not data.get(name):
                data[name] = now
        if table in REFERENCE_CODES:
            field, prefix = REFERENCE_CODES[table]
            if not data.get(field):
                data[field] = make_reference(prefix)

        record = model(**data)
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store.insert failed", extra={"extra_data": {"table": table}})
            raise StoreError(f"could not insert into {table}", table=table) from exc
        return self._to_row(table, record)

    def update(self, table: str, record_id: int, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Apply ``patch`` to one row. Unknown keys are ignored."""

        model = self._model(table)
        record = self._load(model, table, record_id)
        for key, value in self._known_columns(model, patch).items():
            if key == "id":
                continue
            setattr(record, key, value)
        record.updated_at = utcnow_iso()
        try:
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store.update failed", extra={"extra_data": {"table": table, "id": record_id}})
            raise StoreError(f"could not update {table} {record_id}", table=table) from exc
        return self._to_row(table, record)

    def delete(self, table: str, record_id: int) -> None:
        """Remove one row. Only used to undo an insert from a failed write sequence."""

        model = self._model(table)
        record = self._load(model, table, record_id)
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store.delete failed", extra={"extra_data": {"table": table, "id": record_id}})
            raise StoreError(f"could not delete {table} {record_id}", table=table) from exc

    # ---------------------------------------------------------------- helpers
    def _load(self, model, table: str, record_id: int):
        try:
            record = self.db.get(model, record_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"could not load {table} {record_id}", table=table) from exc
        if record is None:
            raise RecordNotFound(table, record_id)
        return record

    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"unknown table: {table}", table=table) from None

    @staticmethod
    def _column(model, table: str, name: str):
        if name not in model.__table__.columns:
            raise ValueError(f"{table} has no column {name!r}")
        return getattr(model, name)

    @staticmethod
    def _known_columns(model, data: Mapping[str, Any]) -> dict[str, Any]:
        columns: Iterable[str] = model.__table__.columns.keys()
        return {key: value for key, value in data.items() if key in columns}

    @staticmethod
    def _to_row(table: str, record) -> dict[str, Any]:
        row = {column.key: getattr(record, column.key) for column in record.__table__.columns}
        for name in JOINED_FIELDS.get(table, ()):
            row[name] = getattr(record, name)
        return row


__all__ = ["DataStore", "TABLES", "utcnow_iso", "make_reference"]
