"""
Users table: customers, restaurant staff and admins.
Only the identity fields the container workflow needs live here; token
issuance and email verification are handled outside this service.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from aqro.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    user_type = Column(String(20), nullable=False, default="customer")  # customer | staff | admin
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"))       # staff only
    auth_token = Column(String(255), unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<User {self.id} {self.email} type={self.user_type}>"
