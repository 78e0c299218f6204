from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text

from ..db.session import Base


class Warranty(Base):
    """Warranty issued for a device sale that did not originate from a loan."""

    __tablename__ = "warranties"

    id = Column(Integer, primary_key=True, index=True)
    warranty_id = Column(Text, nullable=False, unique=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False, index=True)
    customer_name = Column(Text, nullable=False)
    device_info = Column(Text, nullable=False)
    warranty_start_date = Column(Text, nullable=False)
    warranty_end_date = Column(Text, nullable=False, index=True)
    warranty_duration = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["Warranty"]
