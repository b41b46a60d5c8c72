# aqro/services/activity_service.py
"""
Activity ledger: append + read side.

record_activity() only stages the row on the session; the caller's
transaction commits it together with the container change. Nothing in the
service layer updates or deletes an Activity once written.

Report filters are a conjunction of every dimension that is set. An unset or
empty dimension means "no restriction".
"""

import calendar
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from aqro.models.activity import Activity, ACTIVITY_TYPES
from aqro.models.container import Container
from aqro.models.container_type import ContainerType
from aqro.services.errors import InvalidStateError
from aqro.services.user_lookup import Actor


def record_activity(db: Session, *, type: str, user_id: int, container: Container,
                    restaurant_id: Optional[int] = None, amount=Decimal("0"),
                    location: Optional[str] = None, notes: Optional[str] = None) -> Activity:
    if type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {type}")
    activity = Activity(
        user_id=user_id,
        container_id=container.id,
        container_type_id=container.container_type_id,
        restaurant_id=restaurant_id,
        type=type,
        amount=amount,
        status="completed",
        location=location,
        notes=notes,
        created_at=datetime.utcnow(),
    )
    db.add(activity)
    return activity


@dataclass
class ActivityFilter:
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    types: list[str] = field(default_factory=list)
    restaurant_ids: list[int] = field(default_factory=list)
    user_ids: list[int] = field(default_factory=list)
    container_type_ids: list[int] = field(default_factory=list)

    def scoped_to(self, actor: Actor) -> "ActivityFilter":
        """Admins see everything, staff their restaurant, customers themselves."""
        if actor.is_admin:
            return self
        if actor.user_type == "staff":
            if not actor.restaurant_id:
                raise InvalidStateError("Staff not associated with any restaurant")
            return replace(self, restaurant_ids=[actor.restaurant_id])
        return replace(self, user_ids=[actor.id])


def filter_activities(db: Session, filt: ActivityFilter):
    q = db.query(Activity)
    if filt.start_date:
        q = q.filter(Activity.created_at >= filt.start_date)
    if filt.end_date:
        q = q.filter(Activity.created_at <= filt.end_date)
    types = [t for t in filt.types if t and t != "all"]
    if types:
        q = q.filter(Activity.type.in_(types))
    if filt.restaurant_ids:
        q = q.filter(Activity.restaurant_id.in_(filt.restaurant_ids))
    if filt.user_ids:
        q = q.filter(Activity.user_id.in_(filt.user_ids))
    if filt.container_type_ids:
        q = q.filter(Activity.container_type_id.in_(filt.container_type_ids))
    return q


def recent_activities(db: Session, user_id: int, limit: int = 5) -> list[Activity]:
    return (
        db.query(Activity)
        .filter(Activity.user_id == user_id)
        .order_by(Activity.created_at.desc(), Activity.id.desc())
        .limit(limit)
        .all()
    )


def paginate_activities(db: Session, filt: ActivityFilter, page: int = 1, limit: int = 20) -> dict:
    page = max(1, page)
    limit = max(1, limit)
    q = filter_activities(db, filt)
    total = q.count()
    rows = (
        q.order_by(Activity.created_at.desc(), Activity.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "activities": rows,
        "page": page,
        "total_pages": math.ceil(total / limit),
        "total_activities": total,
    }


def activity_report(db: Session, filt: ActivityFilter) -> dict:
    rows = filter_activities(db, filt).order_by(Activity.created_at.desc(), Activity.id.desc()).all()

    by_type = dict(
        filter_activities(db, filt)
        .with_entities(Activity.type, func.count(Activity.id))
        .group_by(Activity.type)
        .all()
    )
    rebate_total = (
        filter_activities(db, filt)
        .filter(Activity.type == "rebate")
        .with_entities(func.coalesce(func.sum(Activity.amount), 0))
        .scalar()
    )
    return {
        "activities": rows,
        "summary": {
            "total_activities": len(rows),
            "registrations": by_type.get("registration", 0),
            "returns": by_type.get("return", 0),
            "rebates": by_type.get("rebate", 0),
            "status_changes": by_type.get("status_change", 0),
            "total_rebate_amount": round(float(rebate_total or 0), 2),
        },
    }


# ── Chart analytics ──────────────────────────────────────────────────────────
ANALYTICS_LEGENDS = {
    "activity": "Container Activity",
    "rebate": "Rebate Amounts ($)",
    "container": "Container Usage",
}


def analytics_window_start(time_frame: str, now: datetime) -> datetime:
    """week (default), month or year back from now."""
    if time_frame == "month":
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        return now.replace(year=year, month=month, day=min(now.day, calendar.monthrange(year, month)[1]))
    if time_frame == "year":
        day = 28 if (now.month == 2 and now.day == 29) else now.day
        return now.replace(year=now.year - 1, day=day)
    return now - timedelta(days=7)


def _as_date(value) -> date:
    # SQLite returns DATE() as text
    return value if isinstance(value, date) else date.fromisoformat(str(value))


def activity_analytics(db: Session, actor: Actor, report_type: str, time_frame: str = "week",
                       now: Optional[datetime] = None) -> dict:
    """
    Chart data over the caller's scoped ledger:
      activity  -> activities per day
      rebate    -> rebate amount per day
      container -> activities per container type, busiest first
    """
    if report_type not in ANALYTICS_LEGENDS:
        raise InvalidStateError("Invalid report type specified", type=report_type)

    start = analytics_window_start(time_frame, now or datetime.utcnow())
    q = filter_activities(db, ActivityFilter(start_date=start).scoped_to(actor))

    if report_type == "container":
        count = func.count(Activity.id)
        rows = (
            q.join(ContainerType, ContainerType.id == Activity.container_type_id)
            .with_entities(ContainerType.name, count)
            .group_by(ContainerType.name)
            .order_by(count.desc(), ContainerType.name)
            .all()
        )
        labels = [name for name, _ in rows]
        data = [n for _, n in rows]
    else:
        day = func.date(Activity.created_at)
        if report_type == "rebate":
            q = q.filter(Activity.type == "rebate")
            value = func.coalesce(func.sum(Activity.amount), 0)
        else:
            value = func.count(Activity.id)
        rows = q.with_entities(day, value).group_by(day).order_by(day).all()
        label_format = "%a" if time_frame not in ("month", "year") else "%b %d"
        labels = [_as_date(d).strftime(label_format) for d, _ in rows]
        data = [round(float(v), 2) if report_type == "rebate" else v for _, v in rows]

    return {
        "labels": labels,
        "datasets": [{"data": data}],
        "legend": [ANALYTICS_LEGENDS[report_type]],
    }
