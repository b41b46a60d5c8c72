"""
Rebates table: one row per cash rebate paid out by a staff member.
Used for staff and restaurant payout totals.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from aqro.database import Base


class Rebate(Base):
    __tablename__ = "rebates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    container_id = Column(Integer, ForeignKey("containers.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    location = Column(String(200), nullable=False)
    date = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Rebate {self.id} container={self.container_id} amount={self.amount}>"
