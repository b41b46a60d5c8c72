"""
Containers table: one row per physical QR-tagged container.

Lifecycle: available → active → returned | lost | damaged
"expired" is never stored: it is derived from uses_count >= container_type.max_uses.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from aqro.database import Base

CONTAINER_STATUSES = ("available", "active", "returned", "lost", "damaged")


class Container(Base):
    __tablename__ = "containers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    qr_code = Column(String(64), unique=True, nullable=False, index=True)
    container_type_id = Column(Integer, ForeignKey("container_types.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), index=True)      # current holder
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True)  # issuing restaurant
    status = Column(String(20), nullable=False, default="available", index=True)
    uses_count = Column(Integer, nullable=False, default=0)
    purchase_date = Column(DateTime)
    registration_date = Column(DateTime)   # set once, on first registration
    last_used = Column(DateTime)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    container_type = relationship("ContainerType", lazy="joined")

    @property
    def max_uses(self) -> int:
        return self.container_type.max_uses if self.container_type else 0

    @property
    def remaining_uses(self) -> int:
        return max(0, self.max_uses - (self.uses_count or 0))

    @property
    def is_expired(self) -> bool:
        return self.status == "active" and self.remaining_uses <= 0

    def __repr__(self):
        return f"<Container {self.qr_code} status={self.status} uses={self.uses_count}>"
