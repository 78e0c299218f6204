"""SQLAlchemy model for items loaned to third-party resellers."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text

from ..db.session import Base


class Loan(Base):
    """A device or a gadget quantity handed to a reseller.

    ``status`` starts ``active`` and ends either ``returned`` or ``sold``; both
    end states are terminal.
    """

    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint(
            "(device_id IS NULL) <> (gadget_id IS NULL)",
            name="ck_loans_single_item",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Text, nullable=False, unique=True, index=True)
    loaner_name = Column(Text, nullable=False)
    loaner_contact = Column(Text, nullable=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=True, index=True)
    gadget_id = Column(Integer, ForeignKey("gadgets.id"), nullable=True, index=True)
    gadget_quantity = Column(Integer, nullable=True)
    item_description = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="active", index=True)
    date_loaned = Column(Text, nullable=False)
    date_returned = Column(Text, nullable=True)
    expected_return_date = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["Loan"]
