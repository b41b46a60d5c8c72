"""Restaurants table: partner shops that issue containers and pay rebates."""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from aqro.database import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    address = Column(String(255))
    city = Column(String(100))
    description = Column(Text, default="")
    contact_number = Column(String(50))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Restaurant {self.id} {self.name}>"
