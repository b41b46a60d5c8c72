# aqro/services/rebate_service.py
"""
Rebate rate table + payout totals.

resolve_rebate_rate() is the only pricing path used by a live rebate: a
missing (restaurant, container type) row is a hard NotFound, never a default.

manage_restaurant_rebate_mappings() validates the whole batch (restaurant,
every container type) before writing, then upserts every pair in one
transaction.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from aqro.database import transaction
from aqro.models.container_type import ContainerType
from aqro.models.rebate import Rebate
from aqro.models.restaurant import Restaurant
from aqro.models.restaurant_container_rebate import RestaurantContainerRebate
from aqro.models.user import User
from aqro.schemas.rebate import RebateMappingBatch
from aqro.services.errors import AuthorizationError, NotFoundError
from aqro.services.user_lookup import Actor
from aqro.utils.logger import get_logger

logger = get_logger(__name__)


def ensure_restaurant_scope(actor: Actor, restaurant_id: int):
    """Staff may only act on their own restaurant. Admins act on any."""
    if actor.is_admin:
        return
    if actor.user_type != "staff" or actor.restaurant_id != restaurant_id:
        raise AuthorizationError("Not authorized for this restaurant")


def resolve_rebate_rate(db: Session, restaurant_id: int, container_type_id: int) -> RestaurantContainerRebate:
    mapping = (
        db.query(RestaurantContainerRebate)
        .filter(
            RestaurantContainerRebate.restaurant_id == restaurant_id,
            RestaurantContainerRebate.container_type_id == container_type_id,
        )
        .first()
    )
    if not mapping:
        raise NotFoundError(
            "No rebate value configured for this container type at this restaurant",
            restaurantId=restaurant_id,
            containerTypeId=container_type_id,
        )
    return mapping


def manage_restaurant_rebate_mappings(db: Session, batch: RebateMappingBatch, actor: Actor) -> list[RestaurantContainerRebate]:
    ensure_restaurant_scope(actor, batch.restaurant_id)
    if not db.get(Restaurant, batch.restaurant_id):
        raise NotFoundError("Restaurant not found", restaurantId=batch.restaurant_id)

    # Later entries for the same type win
    values = {m.container_type_id: Decimal(str(m.rebate_value)).quantize(Decimal("0.01")) for m in batch.mappings}

    known = {
        row[0] for row in
        db.query(ContainerType.id).filter(ContainerType.id.in_(list(values))).all()
    }
    missing = sorted(set(values) - known)
    if missing:
        raise NotFoundError(f"Container type {missing[0]} not found", containerTypeIds=missing)

    existing = {
        m.container_type_id: m for m in
        db.query(RestaurantContainerRebate)
        .filter(
            RestaurantContainerRebate.restaurant_id == batch.restaurant_id,
            RestaurantContainerRebate.container_type_id.in_(list(values)),
        )
        .all()
    }

    now = datetime.utcnow()
    saved = []
    with transaction(db):
        for type_id, value in values.items():
            mapping = existing.get(type_id)
            if mapping:
                mapping.rebate_value = value
                mapping.updated_at = now
            else:
                mapping = RestaurantContainerRebate(
                    restaurant_id=batch.restaurant_id,
                    container_type_id=type_id,
                    rebate_value=value,
                    created_at=now,
                    updated_at=now,
                )
                db.add(mapping)
            saved.append(mapping)

    for mapping in saved:
        db.refresh(mapping)
    logger.info(f"[RATES] Restaurant {batch.restaurant_id}: {len(saved)} rebate mapping(s) saved by user {actor.id}")
    return saved


def mappings_for_container_type(db: Session, container_type_id: int) -> list[RestaurantContainerRebate]:
    return (
        db.query(RestaurantContainerRebate)
        .filter(RestaurantContainerRebate.container_type_id == container_type_id)
        .order_by(RestaurantContainerRebate.restaurant_id)
        .all()
    )


def mappings_for_restaurant(db: Session, restaurant_id: int) -> list[RestaurantContainerRebate]:
    return (
        db.query(RestaurantContainerRebate)
        .filter(RestaurantContainerRebate.restaurant_id == restaurant_id)
        .order_by(RestaurantContainerRebate.container_type_id)
        .all()
    )


def _totals(q) -> dict:
    total, count = q.with_entities(
        func.coalesce(func.sum(Rebate.amount), 0), func.count(Rebate.id)
    ).one()
    return {"total_rebate_amount": round(float(total or 0), 2), "rebate_count": count or 0}


def staff_rebate_totals(db: Session, staff_id: int) -> dict:
    return _totals(db.query(Rebate).filter(Rebate.staff_id == staff_id))


def restaurant_rebate_totals(db: Session, restaurant_id: int) -> dict:
    """Rebates paid by any staff member of the restaurant."""
    q = (
        db.query(Rebate)
        .join(User, User.id == Rebate.staff_id)
        .filter(User.restaurant_id == restaurant_id)
    )
    return _totals(q)


def customer_rebate_total(db: Session, customer_id: int) -> float:
    return _totals(db.query(Rebate).filter(Rebate.customer_id == customer_id))["total_rebate_amount"]
