# aqro/schemas/container.py
"""Typed commands and views for the container transaction endpoints."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from aqro.schemas.base import CamelModel

ContainerStatus = Literal["available", "active", "returned", "lost", "damaged"]


# ── Commands ─────────────────────────────────────────────────────────────────
class RegisterCommand(CamelModel):
    qr_code: str = Field(min_length=1, max_length=64)


class CreateContainerCommand(CamelModel):
    qr_code: str = Field(min_length=1, max_length=64)
    container_type_id: int
    restaurant_id: Optional[int] = None
    purchase_date: Optional[datetime] = None


class ContainerUpdateCommand(CamelModel):
    status: Optional[ContainerStatus] = None
    container_type_id: Optional[int] = None
    customer_id: Optional[int] = None
    restaurant_id: Optional[int] = None


class MarkStatusCommand(CamelModel):
    status: Literal["damaged", "lost"]


# ── Views ────────────────────────────────────────────────────────────────────
class ContainerTypeSummary(CamelModel):
    id: int
    name: str
    max_uses: int


class ContainerOut(CamelModel):
    id: int
    qr_code: str
    status: str
    uses_count: int
    max_uses: int
    remaining_uses: int
    is_expired: bool
    container_type_id: int
    container_type: Optional[ContainerTypeSummary] = None
    customer_id: Optional[int] = None
    restaurant_id: Optional[int] = None
    purchase_date: Optional[datetime] = None
    registration_date: Optional[datetime] = None
    last_used: Optional[datetime] = None


class RegisterResult(CamelModel):
    message: str
    already_registered: bool
    owned_by_current_user: bool
    container: Optional[ContainerOut] = None


class ReturnResult(CamelModel):
    message: str
    container: ContainerOut


class RebateResult(CamelModel):
    message: str
    amount: float
    remaining_uses: int
    container: ContainerOut


class GeneratedQRCode(CamelModel):
    qr_code: str
