"""
Rebate rate table: the cash rebate a restaurant pays per container type.
Exactly one row per (restaurant, container type); writes are upserts.
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, UniqueConstraint
from aqro.database import Base


class RestaurantContainerRebate(Base):
    __tablename__ = "restaurant_container_rebates"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "container_type_id", name="uq_restaurant_container_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    container_type_id = Column(Integer, ForeignKey("container_types.id"), nullable=False, index=True)
    rebate_value = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return (f"<RestaurantContainerRebate restaurant={self.restaurant_id} "
                f"type={self.container_type_id} value={self.rebate_value}>")
