# aqro/routers/containers.py
"""
Container endpoints: customer registration, staff return/rebate processing,
lost/damaged reports and admin provisioning.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from aqro.auth import get_current_user, get_user_lookup, require_user_types
from aqro.database import get_db
from aqro.schemas.container import (
    ContainerOut, ContainerStatus, ContainerUpdateCommand, CreateContainerCommand, GeneratedQRCode,
    MarkStatusCommand, RebateResult, RegisterCommand, RegisterResult, ReturnResult,
)
from aqro.schemas.stats import ContainerStatsOut, RestaurantStatsOut
from aqro.services import container_service, stats_service
from aqro.services.errors import AuthorizationError, InvalidStateError
from aqro.services.notification_service import BestEffortNotifier, get_notifier
from aqro.services.rebate_service import ensure_restaurant_scope
from aqro.services.user_lookup import Actor, SqlUserLookup

router = APIRouter()

staff_or_admin = require_user_types("staff", "admin")
admin_only = require_user_types("admin")


# ── Customer ─────────────────────────────────────────────────────────────────
@router.get("/containers/stats", response_model=ContainerStatsOut, summary="Caller's container counts + total rebate")
def get_container_stats(actor: Actor = Depends(get_current_user), db: Session = Depends(get_db)):
    return stats_service.customer_stats(db, actor.id)


@router.get("/containers", response_model=list[ContainerOut], summary="Caller's containers")
def get_customer_containers(actor: Actor = Depends(get_current_user), db: Session = Depends(get_db)):
    return container_service.list_customer_containers(db, actor.id)


@router.post("/containers/register", response_model=RegisterResult, summary="Register a scanned container")
async def register_container(
    body: RegisterCommand,
    actor: Actor = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: BestEffortNotifier = Depends(get_notifier),
    users: SqlUserLookup = Depends(get_user_lookup),
):
    """Already-owned containers return 200 with alreadyRegistered / ownedByCurrentUser flags."""
    return await container_service.register_container(db, body, actor, notifier=notifier, users=users)


# ── Staff ────────────────────────────────────────────────────────────────────
@router.post("/containers/generate", response_model=GeneratedQRCode, summary="Reserve a new unique QR code")
def generate_qr_code(actor: Actor = Depends(staff_or_admin), db: Session = Depends(get_db)):
    return {"qr_code": container_service.generate_qr_code(db)}


@router.get("/containers/all", response_model=list[ContainerOut], summary="List all containers")
def list_containers(
    status: Optional[ContainerStatus] = None,
    container_type_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
    limit: int = 100,
    offset: int = 0,
    actor: Actor = Depends(staff_or_admin),
    db: Session = Depends(get_db),
):
    if not actor.is_admin:
        if not actor.restaurant_id:
            raise InvalidStateError("Staff not associated with any restaurant")
        restaurant_id = actor.restaurant_id
    return container_service.list_containers(db, status, container_type_id, restaurant_id, limit, offset)


@router.get("/containers/qr/{qr_code}", response_model=ContainerOut, summary="Look up a container by QR code")
def get_container_by_qr(qr_code: str, actor: Actor = Depends(staff_or_admin), db: Session = Depends(get_db)):
    return container_service.get_container_by_qr(db, qr_code)


@router.get("/containers/restaurant/{restaurant_id}/stats", response_model=RestaurantStatsOut,
            summary="Restaurant-scoped container counts + rebate totals")
def get_restaurant_stats(restaurant_id: int, actor: Actor = Depends(staff_or_admin), db: Session = Depends(get_db)):
    ensure_restaurant_scope(actor, restaurant_id)
    return stats_service.restaurant_stats(db, restaurant_id)


@router.get("/containers/{container_id}", response_model=ContainerOut, summary="Container details")
def get_container(container_id: int, actor: Actor = Depends(get_current_user), db: Session = Depends(get_db)):
    container = container_service.get_container(db, container_id)
    if actor.is_customer and container.customer_id != actor.id:
        raise AuthorizationError("Not authorized to view this container")
    return container


@router.post("/containers/{container_id}/return", response_model=ReturnResult, summary="Process a container return")
async def process_return(
    container_id: int,
    actor: Actor = Depends(staff_or_admin),
    db: Session = Depends(get_db),
    notifier: BestEffortNotifier = Depends(get_notifier),
    users: SqlUserLookup = Depends(get_user_lookup),
):
    return await container_service.process_return(db, container_id, actor, notifier=notifier, users=users)


@router.post("/containers/{container_id}", response_model=RebateResult, include_in_schema=False)
@router.post("/containers/{container_id}/rebate", response_model=RebateResult, summary="Pay a rebate for a container use")
async def process_rebate(
    container_id: int,
    actor: Actor = Depends(staff_or_admin),
    db: Session = Depends(get_db),
    notifier: BestEffortNotifier = Depends(get_notifier),
    users: SqlUserLookup = Depends(get_user_lookup),
):
    return await container_service.process_rebate(db, container_id, actor, notifier=notifier, users=users)


@router.put("/containers/{container_id}/status", response_model=ContainerOut, summary="Mark a container lost or damaged")
async def mark_container_status(
    container_id: int,
    body: MarkStatusCommand,
    actor: Actor = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: BestEffortNotifier = Depends(get_notifier),
    users: SqlUserLookup = Depends(get_user_lookup),
):
    return await container_service.mark_container_status(
        db, container_id, body, actor, notifier=notifier, users=users,
    )


# ── Admin ────────────────────────────────────────────────────────────────────
@router.post("/containers", response_model=ContainerOut, status_code=status.HTTP_201_CREATED,
             summary="Provision a container")
def create_container(body: CreateContainerCommand, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    return container_service.create_container(db, body, actor)


@router.put("/containers/{container_id}", response_model=ContainerOut, summary="Admin update of status/type/owner")
def update_container(
    container_id: int,
    body: ContainerUpdateCommand,
    actor: Actor = Depends(admin_only),
    db: Session = Depends(get_db),
    users: SqlUserLookup = Depends(get_user_lookup),
):
    return container_service.update_container(db, container_id, body, actor, users=users)


@router.delete("/containers/{container_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Hard-delete a container")
def delete_container(container_id: int, actor: Actor = Depends(admin_only), db: Session = Depends(get_db)):
    container_service.delete_container(db, container_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
