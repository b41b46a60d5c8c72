# aqro/schemas/rebate.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from aqro.schemas.base import CamelModel


class RebateMappingIn(CamelModel):
    container_type_id: int
    rebate_value: float = Field(ge=0)


class RebateMappingBatch(CamelModel):
    """Upsert of a restaurant's rate table. Validated as a whole before any write."""
    restaurant_id: int
    mappings: list[RebateMappingIn] = Field(min_length=1)


class RebateMappingOut(CamelModel):
    id: int
    restaurant_id: int
    container_type_id: int
    rebate_value: float
    updated_at: Optional[datetime] = None


class RebateTotalsOut(CamelModel):
    total_rebate_amount: float
    rebate_count: int
