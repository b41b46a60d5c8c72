# aqro/routers/activities.py
"""Activity ledger reads: recent, paginated and filtered reports. Role-scoped."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from aqro.auth import get_current_user
from aqro.config import settings
from aqro.database import get_db
from aqro.schemas.activity import ActivityAnalytics, ActivityOut, ActivityPage, ActivityReport
from aqro.services import activity_service
from aqro.services.activity_service import ActivityFilter
from aqro.services.user_lookup import Actor

router = APIRouter()


@router.get("/activities/recent", response_model=list[ActivityOut], summary="Caller's latest activities")
def get_recent_activities(limit: int = Query(5, ge=1, le=100), actor: Actor = Depends(get_current_user),
                          db: Session = Depends(get_db)):
    return activity_service.recent_activities(db, actor.id, limit)


@router.get("/activities/reports", response_model=ActivityReport, summary="Filtered activity report")
def get_activity_report(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    type: Optional[str] = None,
    restaurant_ids: list[int] = Query([], alias="restaurantIds"),
    user_ids: list[int] = Query([], alias="userIds"),
    container_type_ids: list[int] = Query([], alias="containerTypeIds"),
    actor: Actor = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Every provided filter must match (AND). Omitted filters don't restrict.
    Staff are pinned to their restaurant and customers to themselves.
    """
    filt = ActivityFilter(
        start_date=start_date,
        end_date=end_date,
        types=[type] if type else [],
        restaurant_ids=restaurant_ids,
        user_ids=user_ids,
        container_type_ids=container_type_ids,
    ).scoped_to(actor)
    return activity_service.activity_report(db, filt)


@router.get("/activities/analytics", response_model=ActivityAnalytics, summary="Chart data over a time frame")
def get_activity_analytics(
    type: Optional[str] = None,
    time_frame: str = Query("week", alias="timeFrame"),
    actor: Actor = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """type = activity | rebate | container, timeFrame = week | month | year. Role-scoped like reports."""
    return activity_service.activity_analytics(db, actor, type, time_frame)


@router.get("/activities", response_model=ActivityPage, summary="Paginated activities")
def get_all_activities(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.ACTIVITY_PAGE_SIZE, ge=1, le=200),
    actor: Actor = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return activity_service.paginate_activities(db, ActivityFilter().scoped_to(actor), page, limit)
