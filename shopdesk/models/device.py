"""SQLAlchemy model for individually tracked devices (phones, laptops, tablets)."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Device(Base):
    """A single unit identified by its IMEI or serial number.

    ``status`` moves ``available`` -> ``loaned`` -> back to ``available`` or on
    to ``sold``. ``sold`` is terminal for the ordinary flow.
    """

    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    imei_serial = Column(Text, nullable=False, unique=True, index=True)
    brand = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    capacity = Column(Text, nullable=True)
    color = Column(Text, nullable=True)
    warranty_plan = Column(Text, nullable=False, default="1_year")
    source = Column(Text, nullable=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)
    status = Column(Text, nullable=False, default="available", index=True)
    purchase_price = Column(Numeric(14, 2), nullable=True)
    date_added = Column(Text, nullable=False)
    date_sold = Column(Text, nullable=True)
    date_loaned = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    supplier = relationship("Supplier", lazy="joined")

    @property
    def supplier_name(self) -> str | None:
        return self.supplier.name if self.supplier else None


__all__ = ["Device"]
