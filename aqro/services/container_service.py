# aqro/services/container_service.py
"""
Container transaction engine.

State machine:
    available ──register──▶ active ──return──▶ returned ──owner re-scan──▶ active
                              │
                              └──mark status──▶ lost | damaged

Every transaction is one unit of work: the container update, its Activity row
and (for rebates) the Rebate row commit together or not at all. Container
updates are compare-and-set UPDATEs guarded by the precondition, so two
concurrent callers cannot both win. The webhook notification is handed to the
best-effort notifier only after the commit.
"""

import secrets
import string
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aqro.config import settings
from aqro.database import transaction
from aqro.models.activity import Activity
from aqro.models.container import Container
from aqro.models.container_type import ContainerType
from aqro.models.rebate import Rebate
from aqro.models.restaurant import Restaurant
from aqro.schemas.container import (
    RegisterCommand, CreateContainerCommand, ContainerUpdateCommand, MarkStatusCommand,
)
from aqro.services.activity_service import record_activity
from aqro.services.errors import (
    AuthorizationError, InvalidStateError, NotFoundError, QRCodeGenerationError,
)
from aqro.services.notification_service import BestEffortNotifier, build_payload
from aqro.services.rebate_service import resolve_rebate_rate
from aqro.services.user_lookup import Actor, UserLookup
from aqro.utils.logger import get_logger

logger = get_logger(__name__)

_QR_ALPHABET = string.digits + string.ascii_uppercase   # base36


# ── Lookups ──────────────────────────────────────────────────────────────────
def get_container(db: Session, container_id: int) -> Container:
    container = db.get(Container, container_id)
    if not container:
        raise NotFoundError("Container not found", containerId=container_id)
    return container


def get_container_by_qr(db: Session, qr_code: str) -> Container:
    container = db.query(Container).filter(Container.qr_code == qr_code).first()
    if not container:
        raise NotFoundError("Container not found", qrCode=qr_code)
    return container


def list_customer_containers(db: Session, customer_id: int) -> list[Container]:
    return (
        db.query(Container)
        .filter(Container.customer_id == customer_id)
        .order_by(Container.updated_at.desc(), Container.id.desc())
        .all()
    )


def list_containers(db: Session, status: str = None, container_type_id: int = None,
                    restaurant_id: int = None, limit: int = 100, offset: int = 0) -> list[Container]:
    q = db.query(Container)
    if status:
        q = q.filter(Container.status == status)
    if container_type_id:
        q = q.filter(Container.container_type_id == container_type_id)
    if restaurant_id:
        q = q.filter(Container.restaurant_id == restaurant_id)
    return q.order_by(Container.id.desc()).offset(offset).limit(limit).all()


def _staff_restaurant(db: Session, actor: Actor) -> Restaurant:
    if not actor.restaurant_id:
        raise InvalidStateError("Staff not associated with any restaurant")
    restaurant = db.get(Restaurant, actor.restaurant_id)
    if not restaurant:
        raise NotFoundError("Restaurant not found", restaurantId=actor.restaurant_id)
    return restaurant


def _compare_and_set(db: Session, container_id: int, *conditions, **values) -> bool:
    """UPDATE containers SET values WHERE id = :id AND conditions. True if the row matched."""
    result = db.execute(
        update(Container)
        .where(Container.id == container_id, *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _notify(notifier: BestEffortNotifier, users: UserLookup, event: str, container: Container,
            restaurant: Optional[Restaurant] = None, amount=None):
    try:
        customer = users.get(container.customer_id)
        notifier.notify(build_payload(
            event,
            customer_id=container.customer_id,
            email=customer.email if customer else None,
            container_id=container.id,
            container_type=container.container_type.name if container.container_type else None,
            restaurant=restaurant.name if restaurant else None,
            amount=amount,
        ))
    except Exception as e:
        logger.error(f"[NOTIFY] Could not build {event} notification for container {container.id}: {e}")


def _usage_exhausted(container: Container) -> InvalidStateError:
    return InvalidStateError(
        "Container has reached its maximum number of uses",
        maxUses=container.max_uses,
        currentUses=container.uses_count,
        remainingUses=container.remaining_uses,
    )


# ── Register ─────────────────────────────────────────────────────────────────
def _register_result(container: Container, message: str, already: bool, owned: bool) -> dict:
    return {
        "message": message,
        "already_registered": already,
        "owned_by_current_user": owned,
        "container": container if owned else None,
    }


async def register_container(db: Session, command: RegisterCommand, actor: Actor, *,
                             notifier: BestEffortNotifier, users: UserLookup) -> dict:
    """
    Claim a container for the scanning customer.

    Re-scanning your own container is a no-op (a returned one starts a new
    cycle). A container owned by someone else is a soft conflict: the caller
    gets a normal result with owned_by_current_user=False.
    """
    container = get_container_by_qr(db, command.qr_code)

    if container.customer_id == actor.id and container.status != "returned":
        return _register_result(container, "Container is already registered to you", True, True)
    if container.customer_id is not None and container.customer_id != actor.id:
        logger.warning(f"[REGISTER] {container.qr_code} already owned, customer {actor.id} refused")
        return _register_result(container, "Container is already registered to another user", True, False)

    now = datetime.utcnow()
    with transaction(db):
        if container.customer_id is None:
            claimed = _compare_and_set(
                db, container.id, Container.customer_id.is_(None),
                customer_id=actor.id, status="active",
                registration_date=container.registration_date or now, updated_at=now,
            )
            notes = None
        else:
            claimed = _compare_and_set(
                db, container.id, Container.customer_id == actor.id, Container.status == "returned",
                status="active", updated_at=now,
            )
            notes = "New cycle after return"
        if claimed:
            record_activity(db, type="registration", user_id=actor.id, container=container,
                            restaurant_id=container.restaurant_id, notes=notes)

    db.refresh(container)
    if not claimed:
        owned = container.customer_id == actor.id
        logger.warning(f"[REGISTER] {container.qr_code} lost registration race to customer {actor.id}")
        message = "Container is already registered to you" if owned else "Container is already registered to another user"
        return _register_result(container, message, True, owned)

    logger.info(f"[REGISTER] {container.qr_code} → customer {actor.id}")
    _notify(notifier, users, "registration", container)
    return _register_result(container, "Container registered successfully", False, True)


# ── Return ───────────────────────────────────────────────────────────────────
async def process_return(db: Session, container_id: int, actor: Actor, *,
                         notifier: BestEffortNotifier, users: UserLookup) -> dict:
    restaurant = _staff_restaurant(db, actor)
    container = get_container(db, container_id)

    if container.customer_id is None:
        raise InvalidStateError("Container is not registered to any customer", status=container.status)
    if container.status == "returned":
        raise InvalidStateError("Container has already been returned", status=container.status)

    now = datetime.utcnow()
    with transaction(db):
        returned = _compare_and_set(
            db, container.id, Container.status != "returned", Container.customer_id.isnot(None),
            status="returned", last_used=now, updated_at=now,
        )
        if returned:
            record_activity(db, type="return", user_id=container.customer_id, container=container,
                            restaurant_id=restaurant.id, location=restaurant.name)

    db.refresh(container)
    if not returned:
        raise InvalidStateError("Container has already been returned", status=container.status)

    logger.info(f"[RETURN] {container.qr_code} returned at {restaurant.name} (staff {actor.id})")
    _notify(notifier, users, "return", container, restaurant)
    return {"message": "Container returned successfully", "container": container}


# ── Rebate ───────────────────────────────────────────────────────────────────
async def process_rebate(db: Session, container_id: int, actor: Actor, *,
                         notifier: BestEffortNotifier, users: UserLookup) -> dict:
    """
    Pay the customer the restaurant's rate for this container type and count one use.
    Refused once uses_count reaches the type's max_uses.
    """
    restaurant = _staff_restaurant(db, actor)
    container = get_container(db, container_id)

    if container.customer_id is None:
        raise InvalidStateError("Container is not registered to any customer", status=container.status)
    if container.status in ("lost", "damaged"):
        raise InvalidStateError(f"Container is marked as {container.status}", status=container.status)
    if container.uses_count >= container.max_uses:
        raise _usage_exhausted(container)

    amount = resolve_rebate_rate(db, restaurant.id, container.container_type_id).rebate_value
    max_uses = container.max_uses

    now = datetime.utcnow()
    with transaction(db):
        counted = _compare_and_set(
            db, container.id,
            Container.uses_count < max_uses,
            Container.customer_id == container.customer_id,
            Container.status.notin_(("lost", "damaged")),
            uses_count=Container.uses_count + 1, last_used=now, updated_at=now,
        )
        if counted:
            db.add(Rebate(
                container_id=container.id,
                customer_id=container.customer_id,
                staff_id=actor.id,
                amount=amount,
                location=restaurant.name,
                date=now,
            ))
            record_activity(db, type="rebate", user_id=container.customer_id, container=container,
                            restaurant_id=restaurant.id, amount=amount, location=restaurant.name)

    db.refresh(container)
    if not counted:
        if container.status in ("lost", "damaged"):
            raise InvalidStateError(f"Container is marked as {container.status}", status=container.status)
        raise _usage_exhausted(container)

    logger.info(f"[REBATE] {container.qr_code} paid {amount} at {restaurant.name} "
                f"(use {container.uses_count}/{max_uses}, staff {actor.id})")
    _notify(notifier, users, "rebate", container, restaurant, amount)
    return {
        "message": "Rebate processed successfully",
        "amount": float(amount),
        "remaining_uses": container.remaining_uses,
        "container": container,
    }


# ── Mark lost / damaged ──────────────────────────────────────────────────────
async def mark_container_status(db: Session, container_id: int, command: MarkStatusCommand, actor: Actor, *,
                                notifier: BestEffortNotifier, users: UserLookup) -> Container:
    container = get_container(db, container_id)

    if actor.is_customer and container.customer_id != actor.id:
        raise AuthorizationError("Not authorized to update this container")
    if container.status != "active":
        raise InvalidStateError(
            f"Only active containers can be marked as {command.status}", status=container.status,
        )

    old_status, new_status = container.status, command.status
    now = datetime.utcnow()
    with transaction(db):
        changed = _compare_and_set(
            db, container.id, Container.status == "active",
            status=new_status, last_used=now, updated_at=now,
        )
        if changed:
            record_activity(db, type="status_change", user_id=container.customer_id or actor.id,
                            container=container, restaurant_id=actor.restaurant_id,
                            notes=f"From {old_status} to {new_status}")

    db.refresh(container)
    if not changed:
        raise InvalidStateError(f"Only active containers can be marked as {new_status}", status=container.status)

    logger.info(f"[STATUS] {container.qr_code}: {old_status} → {new_status} (user {actor.id})")
    _notify(notifier, users, "status_change", container)
    return container


# ── Provisioning (admin) ─────────────────────────────────────────────────────
def _random_component(length: int = 6) -> str:
    return "".join(secrets.choice(_QR_ALPHABET) for _ in range(length))


def is_valid_qr_code(qr_code: str) -> bool:
    return bool(qr_code) and qr_code.startswith(settings.QR_CODE_PREFIX)


def generate_qr_code(db: Session) -> str:
    """
    Reserve a candidate code: AQRO-<6 base36>-<last 6 digits of epoch ms>.
    Does not create a container.
    """
    for attempt in range(1, settings.QR_GENERATE_MAX_ATTEMPTS + 1):
        suffix = str(int(time.time() * 1000))[-6:]
        code = f"{settings.QR_CODE_PREFIX}{_random_component()}-{suffix}"
        if not db.query(Container.id).filter(Container.qr_code == code).first():
            return code
        logger.warning(f"[QR] Collision on attempt {attempt}: {code}")
    raise QRCodeGenerationError("Could not generate a unique QR code, please try again")


def _get_container_type(db: Session, container_type_id: int) -> ContainerType:
    container_type = db.get(ContainerType, container_type_id)
    if not container_type:
        raise NotFoundError("Container type not found", containerTypeId=container_type_id)
    return container_type


def create_container(db: Session, command: CreateContainerCommand, actor: Actor) -> Container:
    if db.query(Container.id).filter(Container.qr_code == command.qr_code).first():
        raise InvalidStateError("A container with this QR code already exists", qrCode=command.qr_code)
    container_type = _get_container_type(db, command.container_type_id)
    if not container_type.is_active:
        raise InvalidStateError("Container type is inactive", containerTypeId=container_type.id)

    restaurant_id = command.restaurant_id or actor.restaurant_id
    if restaurant_id and not db.get(Restaurant, restaurant_id):
        raise NotFoundError("Restaurant not found", restaurantId=restaurant_id)

    now = datetime.utcnow()
    container = Container(
        qr_code=command.qr_code,
        container_type_id=container_type.id,
        restaurant_id=restaurant_id,
        status="available",
        uses_count=0,
        purchase_date=command.purchase_date or now,
        created_at=now,
        updated_at=now,
    )
    try:
        with transaction(db):
            db.add(container)
    except IntegrityError:
        raise InvalidStateError("A container with this QR code already exists", qrCode=command.qr_code)

    db.refresh(container)
    logger.info(f"[PROVISION] Container {container.qr_code} ({container_type.name}) created by user {actor.id}")
    return container


def _check_admin_transition(container: Container, new_status: str, owner: Optional[int]):
    """Admin overrides follow the same lifecycle as the engine."""
    if new_status != container.status and new_status in ("lost", "damaged") and container.status != "active":
        raise InvalidStateError(
            f"Only active containers can be marked as {new_status}", status=container.status,
        )
    if new_status in ("active", "returned") and owner is None:
        raise InvalidStateError(
            f"A {new_status} container must be registered to a customer", status=container.status,
        )
    if new_status == "available" and owner is not None:
        raise InvalidStateError(
            "An available container cannot be registered to a customer", status=container.status,
        )


def update_container(db: Session, container_id: int, command: ContainerUpdateCommand, actor: Actor, *,
                     users: UserLookup) -> Container:
    """Admin override of status, type, owner or restaurant. Never touches uses_count."""
    container = get_container(db, container_id)
    changes = command.model_dump(exclude_unset=True)

    if changes.get("container_type_id") is not None:
        new_type = _get_container_type(db, changes["container_type_id"])
        if (container.uses_count or 0) > new_type.max_uses:
            raise InvalidStateError(
                "Container has more uses than the new container type allows",
                maxUses=new_type.max_uses,
                currentUses=container.uses_count,
            )
    else:
        changes.pop("container_type_id", None)
    if changes.get("customer_id") is not None and not users.get(changes["customer_id"]):
        raise NotFoundError("Customer not found", customerId=changes["customer_id"])
    if changes.get("restaurant_id") is not None and not db.get(Restaurant, changes["restaurant_id"]):
        raise NotFoundError("Restaurant not found", restaurantId=changes["restaurant_id"])
    if changes.get("status") is None:
        changes.pop("status", None)

    if "status" in changes or "customer_id" in changes:
        _check_admin_transition(
            container,
            changes.get("status", container.status),
            changes["customer_id"] if "customer_id" in changes else container.customer_id,
        )

    old_status = container.status
    with transaction(db):
        for key, value in changes.items():
            setattr(container, key, value)
        container.updated_at = datetime.utcnow()
        new_status = changes.get("status", old_status)
        owner = container.customer_id
        if new_status != old_status and owner:
            db.flush()
            record_activity(db, type="status_change", user_id=owner, container=container,
                            restaurant_id=container.restaurant_id,
                            notes=f"From {old_status} to {new_status}")

    db.refresh(container)
    logger.info(f"[ADMIN] Container {container.qr_code} updated by user {actor.id}: {sorted(changes)}")
    return container


def delete_container(db: Session, container_id: int, actor: Actor):
    """Hard delete, only for containers that never entered the ledger."""
    container = get_container(db, container_id)
    has_history = (
        db.query(Activity.id).filter(Activity.container_id == container.id).first()
        or db.query(Rebate.id).filter(Rebate.container_id == container.id).first()
    )
    if has_history:
        raise InvalidStateError(
            "Container has transaction history and cannot be deleted; mark it lost or damaged instead",
            status=container.status,
        )
    with transaction(db):
        db.delete(container)
    logger.info(f"[ADMIN] Container {container.qr_code} deleted by user {actor.id}")
