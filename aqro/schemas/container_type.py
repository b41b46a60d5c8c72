# aqro/schemas/container_type.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from aqro.schemas.base import CamelModel


class ContainerTypeCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    price: float = Field(default=0, ge=0)
    rebate_value: float = Field(default=0, ge=0)
    max_uses: Optional[int] = Field(default=None, gt=0)


class ContainerTypeUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    rebate_value: Optional[float] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class ContainerTypeOut(CamelModel):
    id: int
    name: str
    description: str
    price: float
    rebate_value: float
    max_uses: int
    is_active: bool
    created_at: Optional[datetime] = None
