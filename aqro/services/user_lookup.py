# aqro/services/user_lookup.py
"""
Narrow user-resolution capability handed to the transaction engine.
The engine only ever needs id → {email, restaurant_id}.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session
from aqro.models.user import User


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as supplied by the auth layer."""
    id: int
    user_type: str                      # customer | staff | admin
    restaurant_id: Optional[int] = None

    @property
    def is_customer(self) -> bool:
        return self.user_type == "customer"

    @property
    def is_admin(self) -> bool:
        return self.user_type == "admin"


@dataclass(frozen=True)
class UserInfo:
    id: int
    email: str
    restaurant_id: Optional[int] = None


class UserLookup(Protocol):
    def get(self, user_id: int) -> Optional[UserInfo]:
        ...


class SqlUserLookup:
    """UserLookup backed by the users table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[UserInfo]:
        if user_id is None:
            return None
        user = self.db.get(User, user_id)
        if not user:
            return None
        return UserInfo(id=user.id, email=user.email, restaurant_id=user.restaurant_id)
