"""
Container type catalog (Coffee Cup, Meal Box, ...).
max_uses is the rebate ceiling for every container of the type.
rebate_value is a legacy default only. Live rebates are priced by
restaurant_container_rebates.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Numeric
from aqro.database import Base


class ContainerType(Base):
    __tablename__ = "container_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), default=0)
    rebate_value = Column(Numeric(10, 2), default=0)
    max_uses = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, default=True, nullable=False)   # soft-delete flag
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<ContainerType {self.id} {self.name} max_uses={self.max_uses}>"
