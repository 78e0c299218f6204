"""SQLAlchemy model for the sales ledger."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, Text

from ..db.session import Base


class Sale(Base):
    """One sale of either a device or a quantity of a gadget, never both."""

    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("sale_price >= 0", name="ck_sales_price_non_negative"),
        CheckConstraint(
            "(device_id IS NULL) <> (gadget_id IS NULL)",
            name="ck_sales_single_item",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Text, nullable=False, unique=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    customer_name = Column(Text, nullable=False)
    sale_type = Column(Text, nullable=False, default="retail")
    sale_price = Column(Numeric(14, 2), nullable=False)
    sale_source = Column(Text, nullable=False, default="inventory")
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=True, index=True)
    gadget_id = Column(Integer, ForeignKey("gadgets.id"), nullable=True, index=True)
    gadget_quantity = Column(Integer, nullable=True)
    item_description = Column(Text, nullable=False)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=True, index=True)
    date_sold = Column(Text, nullable=False, index=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["Sale"]
