"""SQLAlchemy model for suppliers that devices and gadgets are bought from."""

from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, Text

from ..db.session import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    contact_info = Column(JSON, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["Supplier"]
