# aqro/services/stats_service.py
"""
Container counts by status, scoped to a customer or a restaurant.

"expired" is derived here (active and uses_count >= max_uses) and is counted
instead of "active" for those containers. It is never a stored status.
"""

from sqlalchemy import func, case, and_
from sqlalchemy.orm import Session

from aqro.models.container import Container
from aqro.models.container_type import ContainerType
from aqro.services.rebate_service import customer_rebate_total, restaurant_rebate_totals


def container_status_counts(db: Session, *, customer_id: int = None, restaurant_id: int = None) -> dict:
    expired = and_(Container.status == "active", Container.uses_count >= ContainerType.max_uses)
    bucket = case((expired, "expired"), else_=Container.status)

    q = db.query(bucket, func.count(Container.id)).join(
        ContainerType, ContainerType.id == Container.container_type_id
    )
    if customer_id is not None:
        q = q.filter(Container.customer_id == customer_id)
    if restaurant_id is not None:
        q = q.filter(Container.restaurant_id == restaurant_id)

    counts = dict(q.group_by(bucket).all())
    return {
        "available_containers": counts.get("available", 0),
        "active_containers": counts.get("active", 0),
        "returned_containers": counts.get("returned", 0),
        "lost_containers": counts.get("lost", 0),
        "damaged_containers": counts.get("damaged", 0),
        "expired_containers": counts.get("expired", 0),
    }


def customer_stats(db: Session, customer_id: int) -> dict:
    stats = container_status_counts(db, customer_id=customer_id)
    stats["total_rebate"] = customer_rebate_total(db, customer_id)
    return stats


def restaurant_stats(db: Session, restaurant_id: int) -> dict:
    stats = container_status_counts(db, restaurant_id=restaurant_id)
    totals = restaurant_rebate_totals(db, restaurant_id)
    stats.update(
        restaurant_id=restaurant_id,
        total_rebate=totals["total_rebate_amount"],
        rebate_count=totals["rebate_count"],
    )
    return stats
