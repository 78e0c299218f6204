"""SQLAlchemy model for bulk gadgets tracked by quantity (chargers, cases, ...)."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Gadget(Base):
    __tablename__ = "gadgets"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_gadgets_quantity_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Text, nullable=False, unique=True, index=True)
    brand = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)
    purchase_price = Column(Numeric(14, 2), nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    supplier = relationship("Supplier", lazy="joined")

    @property
    def supplier_name(self) -> str | None:
        return self.supplier.name if self.supplier else None


__all__ = ["Gadget"]
