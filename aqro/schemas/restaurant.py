# aqro/schemas/restaurant.py
from typing import Optional

from pydantic import Field

from aqro.schemas.base import CamelModel


class RestaurantCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = None
    description: str = ""
    contact_number: Optional[str] = None
    is_active: bool = True


class RestaurantOut(CamelModel):
    id: int
    name: str
    address: Optional[str]
    city: Optional[str]
    description: Optional[str]
    contact_number: Optional[str]
    is_active: bool
