"""
Activity ledger: append-only record of every container transaction.
Written in the same unit of work as the container change it describes.
Used for customer history, staff dashboards and reports.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, Text, Index
from aqro.database import Base

ACTIVITY_TYPES = ("registration", "return", "rebate", "status_change")


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_restaurant_created", "user_id", "restaurant_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    container_id = Column(Integer, ForeignKey("containers.id"), nullable=False, index=True)
    container_type_id = Column(Integer, ForeignKey("container_types.id"))
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"))
    type = Column(String(20), nullable=False, index=True)           # registration | return | rebate | status_change
    amount = Column(Numeric(10, 2), nullable=False, default=0)       # rebate only
    status = Column(String(20), nullable=False, default="completed")  # completed | pending | cancelled
    location = Column(String(200))
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Activity {self.id} type={self.type} container={self.container_id}>"
